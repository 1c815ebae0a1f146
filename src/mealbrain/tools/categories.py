"""
Keyword categorisation of grocery items into shopping-list sections.

An item name is matched against every keyword as a whole word or phrase (a trailing plural ``s``
or ``es`` is allowed).  The longest matching keyword wins, ties going to the earlier category, so
"coconut milk" lands in Canned Goods rather than Dairy & Eggs.  The result is then mapped onto the
household's own category names; anything the household does not use falls back to "Other".
"""

import re
from typing import (
    Dict,
    List,
    Optional,
    Sequence,
)

FALLBACK_CATEGORY = "Other"

CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "Produce": [
        "onion", "garlic", "tomato", "potato", "carrot", "celery", "lettuce", "spinach",
        "kale", "cabbage", "broccoli", "cauliflower", "pepper", "bell pepper", "jalapeño",
        "cucumber", "zucchini", "squash", "eggplant", "mushroom", "avocado",
        "apple", "banana", "orange", "lemon", "lime", "berry", "strawberry", "blueberry",
        "grape", "melon", "peach", "pear", "mango", "pineapple", "cilantro", "parsley",
        "basil", "thyme", "rosemary", "mint", "dill", "oregano", "sage", "arugula",
    ],
    "Meat & Seafood": [
        "chicken", "beef", "pork", "turkey", "lamb", "steak", "ground beef", "ground turkey",
        "bacon", "sausage", "ham", "fish", "salmon", "tuna", "shrimp", "crab", "lobster",
        "scallop", "cod", "tilapia", "mahi", "halibut", "swordfish", "anchovy",
    ],
    "Dairy & Eggs": [
        "milk", "cheese", "cheddar", "mozzarella", "parmesan", "feta", "goat cheese",
        "cream cheese", "cottage cheese", "ricotta", "butter", "margarine", "yogurt",
        "sour cream", "heavy cream", "whipping cream", "half and half", "egg",
        "cream", "ice cream", "frozen yogurt",
    ],
    "Bakery": [
        "bread", "bun", "roll", "bagel", "english muffin", "tortilla", "pita", "naan",
        "croissant", "baguette", "sourdough", "wheat bread", "white bread", "rye",
        "ciabatta", "focaccia", "flatbread",
    ],
    "Frozen": [
        "frozen", "ice", "popsicle", "frozen dinner", "frozen pizza", "frozen vegetable",
        "frozen fruit", "frozen waffle", "frozen fries",
    ],
    "Canned Goods": [
        "canned", "black beans", "kidney beans", "chickpeas", "refried beans",
        "corn", "green beans", "tomato sauce", "tomato paste", "diced tomatoes",
        "crushed tomatoes", "coconut milk", "evaporated milk", "condensed milk",
        "broth", "stock", "soup", "olives",
    ],
    "Condiments & Sauces": [
        "ketchup", "mustard", "mayonnaise", "mayo", "relish", "hot sauce", "sriracha",
        "soy sauce", "worcestershire", "bbq sauce", "barbecue", "teriyaki", "salsa",
        "pico de gallo", "guacamole", "hummus", "ranch", "vinegar", "balsamic",
        "oil", "olive oil", "vegetable oil", "canola oil", "sesame oil", "coconut oil",
        "salad dressing", "vinaigrette", "chili sauce", "fish sauce", "oyster sauce",
    ],
    "Beverages": [
        "water", "soda", "juice", "coffee", "tea", "beer", "wine", "liquor", "vodka",
        "rum", "whiskey", "gin", "tequila", "seltzer", "sparkling water", "lemonade",
        "sports drink", "energy drink", "kombucha", "almond milk", "oat milk", "soy milk",
    ],
    "Snacks & Treats": [
        "chips", "crackers", "pretzels", "popcorn", "nuts", "almonds", "peanuts", "cashews",
        "trail mix", "granola bar", "protein bar", "candy", "chocolate", "cookies",
        "cake", "brownies", "donuts", "muffin", "pie", "pudding", "jello", "gummies",
    ],
    "Pantry": [
        "rice", "pasta", "noodle", "spaghetti", "macaroni", "penne", "quinoa", "couscous",
        "flour", "all-purpose flour", "wheat flour", "almond flour", "coconut flour",
        "sugar", "brown sugar", "powdered sugar", "honey", "maple syrup", "agave",
        "salt", "spice", "cinnamon", "paprika", "cumin", "chili powder",
        "garlic powder", "onion powder", "cayenne", "turmeric", "ginger", "nutmeg",
        "vanilla", "extract", "baking soda", "baking powder", "yeast", "cornstarch",
        "breadcrumbs", "panko", "oats", "cereal", "granola", "peanut butter", "jam",
        "jelly", "preserves", "nutella", "tahini", "taco shells",
    ],
    "Household": [
        "paper towel", "toilet paper", "tissue", "kleenex", "napkin", "plate",
        "foil", "aluminum foil", "plastic wrap", "wax paper",
        "parchment paper", "ziploc", "trash bag", "garbage bag", "sponge", "dish soap",
        "detergent", "laundry", "bleach", "cleaner", "disinfectant", "soap", "shampoo",
        "conditioner", "toothpaste", "toothbrush", "deodorant", "razor", "shaving cream",
    ],
}  # fmt: skip

_PATTERNS = [
    (category, keyword, re.compile(rf"\b{re.escape(keyword)}(?:s|es)?\b"))
    for category, keywords in CATEGORY_KEYWORDS.items()
    for keyword in keywords
]


def suggest_category(item_name: str) -> Optional[str]:
    """Standard section for *item_name*, or None when no keyword matches."""
    normalized = " ".join(item_name.lower().split())
    best: Optional[str] = None
    best_length = 0
    for category, keyword, pattern in _PATTERNS:
        if len(keyword) > best_length and pattern.search(normalized):
            best, best_length = category, len(keyword)
    return best


def categorize_item(item_name: str, categories: Sequence[str]) -> str:
    """
    Section of *item_name* among the household's *categories*.

    Matching against *categories* ignores case and returns the household's spelling.
    """
    by_name = {category.lower(): category for category in categories}
    suggested = suggest_category(item_name)
    if suggested is not None and suggested.lower() in by_name:
        return by_name[suggested.lower()]
    return by_name.get(FALLBACK_CATEGORY.lower(), FALLBACK_CATEGORY)
