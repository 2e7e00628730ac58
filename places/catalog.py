"""
Catalog search and province filter.

Every place carries bilingual columns (`name_en`/`name_km`,
`province_en`/`province_km`) plus a `keywords` list. Search reads the columns
of the requested language only:

    visible = filter_places(places, query="temple", province="Siem Reap", lang="en")
    options = provinces(places, lang="en")
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from common.types import Place


LANGS = ("en", "km")
ALL_PROVINCES = "all"


def _check_lang(lang: str) -> str:
    if lang not in LANGS:
        raise ValueError(f"unsupported language {lang!r}; expected one of {', '.join(LANGS)}")
    return lang


def localized(place: Place, field: str, lang: str = "en") -> str:
    """`<field>_<lang>` from the record, or "" when unset."""
    v = place.attrs.get(f"{field}_{_check_lang(lang)}")
    return str(v) if v else ""


def keywords(place: Place) -> List[str]:
    kw = place.attrs.get("keywords") or []
    if isinstance(kw, str):
        kw = [kw]
    return [str(k) for k in kw if k]


def matches(place: Place, query: str = "", province: str = ALL_PROVINCES, lang: str = "en") -> bool:
    """
    Case-insensitive substring match of `query` against the localized name,
    the localized province and any keyword; `province` must equal the
    localized province unless it is "all" (or empty).
    """
    prov = localized(place, "province", lang).lower()
    wanted = (province or ALL_PROVINCES).strip().lower()
    if wanted != ALL_PROVINCES and prov != wanted:
        return False
    q = (query or "").strip().lower()
    if not q:
        return True
    if q in localized(place, "name", lang).lower() or q in prov:
        return True
    return any(q in k.lower() for k in keywords(place))


def filter_places(
    places: Iterable[Place],
    query: str = "",
    province: str = ALL_PROVINCES,
    lang: str = "en",
) -> List[Place]:
    """Places matching `query` and `province`, input order kept."""
    _check_lang(lang)
    return [p for p in places if matches(p, query, province, lang)]


def provinces(places: Sequence[Place], lang: str = "en") -> List[str]:
    """Distinct non-empty localized provinces, in first-seen order."""
    seen = dict.fromkeys(localized(p, "province", lang) for p in places)
    return [p for p in seen if p]
