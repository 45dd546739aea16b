from __future__ import annotations

URBAN = "urban"
SEA = "sea"
MOUNTAIN = "mountain"
GENERIC = "generic"

# Evaluated top to bottom; the first list with a substring hit decides the context.
CONTEXT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        URBAN,
        (
            "roma", "rome", "milano", "milan", "firenze", "florence", "venezia", "venice",
            "napoli", "naples", "bologna", "torino", "turin", "verona", "genova", "pisa", "siena",
        ),
    ),
    (
        SEA,
        (
            "rimini", "riccione", "viareggio", "taormina", "alghero", "cagliari", "olbia",
            "gallipoli", "sorrento", "positano", "ostuni",
        ),
    ),
    (
        MOUNTAIN,
        (
            "madonna di campiglio", "cortina", "cortina d'ampezzo", "bormio", "livigno", "ortisei",
            "selva", "val gardena", "canazei", "alpe di siusi", "brunico", "folgarida", "courmayeur",
        ),
    ),
)

CONTEXT_MULTIPLIERS = {
    SEA: 1.05,
    MOUNTAIN: 1.08,
}


def classify_location(text: str | None) -> str:
    haystack = (text or "").lower()
    for tag, keywords in CONTEXT_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return tag
    return GENERIC
