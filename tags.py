# tags.py - suggested tags for a new saree, from its type and name

# first two tags of the matching type are used
TYPE_TAGS = {
    "silk": ["Traditional", "Wedding", "Premium", "Handloom"],
    "cotton": ["Casual", "Comfortable", "Summer", "Daily Wear"],
    "georgette": ["Party Wear", "Lightweight", "Elegant", "Designer"],
    "chiffon": ["Evening Wear", "Festive", "Soft", "Draping"],
    "kanjivaram": ["Bridal", "South Indian", "Pure Silk", "Heritage"],
}

NAME_KEYWORDS = [
    ("bridal", "Wedding"),
    ("party", "Party Wear"),
    ("printed", "Printed"),
    ("embroidered", "Embroidered"),
]

MAX_TAGS = 4


def suggest_tags(name, saree_type):
    tags = list(TYPE_TAGS.get((saree_type or "").strip().lower(), [])[:2])
    lowered = (name or "").lower()
    for keyword, tag in NAME_KEYWORDS:
        if keyword in lowered:
            tags.append(tag)

    unique = []
    for tag in tags:
        if tag not in unique:
            unique.append(tag)
    return unique[:MAX_TAGS]
