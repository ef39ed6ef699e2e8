"""Guide locales and the curated list of high-traffic entry pages."""

DEFAULT_LANG = "en_us"

LANGS: tuple[str, ...] = (
    "en_us",
    "ja_jp",
    "ko_kr",
    "pt_br",
    "ru_ru",
    "uk_ua",
    "zh_cn",
    "zh_hk",
    "zh_tw",
)

LANG_LABELS: dict[str, str] = {
    "en_us": "English (en_us)",
    "ja_jp": "日本語 (ja_jp)",
    "ko_kr": "한국어 (ko_kr)",
    "pt_br": "Português (pt_br)",
    "ru_ru": "Русский (ru_ru)",
    "uk_ua": "Українська (uk_ua)",
    "zh_cn": "简体中文 (zh_cn)",
    "zh_hk": "香港繁體 (zh_hk)",
    "zh_tw": "繁體中文 (zh_tw)",
}

# (label, path relative to the locale base); "" is the locale root
TOP_LINKS: tuple[tuple[str, str], ...] = (
    ("Online Field Guide", ""),
    ("Ore Glossary", "tfg_ores.html"),
    ("TFC Geology", "the_world/geology.html"),
    ("Animals", "mechanics/animal_husbandry.html"),
    ("Crops", "mechanics/crops.html"),
    ("Firmalife", "firmalife.html"),
    ("Roads & Roofs", "roadsandroofs.html"),
    ("FirmaCiv", "firmaciv.html"),
    ("TFG Tips", "tfg_tips.html"),
)


def safe_lang(lang: str | None) -> str:
    """Return *lang* if it is a known locale, else the default."""
    if lang and lang.lower() in LANGS:
        return lang.lower()
    return DEFAULT_LANG


def language_choices() -> list[dict[str, str]]:
    return [{"name": LANG_LABELS.get(lang, lang), "value": lang} for lang in LANGS]
