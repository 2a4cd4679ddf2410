from __future__ import annotations

FIRST_NAMES = (
    "Ash", "Briar", "Cato", "Dara", "Ember", "Finch", "Glimmer", "Hollis",
    "Iris", "Jett", "Kestrel", "Lark", "Marlow", "Nyx", "Orrin", "Piper",
    "Quill", "Rue", "Sable", "Thresh", "Umber", "Vale", "Wren", "Yara",
)


def build_default_roster(size: int) -> tuple[list[str], list[str]]:
    """Character ids and display names for a generated roster, two tributes per district."""
    ids: list[str] = []
    names: list[str] = []
    for index in range(size):
        district = index // 2 + 1
        ids.append(f"tribute-{index + 1:02d}")
        base = FIRST_NAMES[index % len(FIRST_NAMES)]
        names.append(f"{base} of District {district}")
    return ids, names
