DEFAULT_CATEGORIES = (
    "groceries",
    "food_delivery",
    "restaurants",
    "transport",
    "utilities",
    "entertainment",
    "shopping",
    "healthcare",
    "education",
    "travel",
    "transfer",
    "salary",
    "other",
)

ENGLISH_EXAMPLES = (
    ("STARBUCKS #1234", "restaurants"),
    ("AMAZON.COM PURCHASE", "shopping"),
    ("UBER TRIP", "transport"),
    ("NETFLIX SUBSCRIPTION", "entertainment"),
    ("WHOLE FOODS MARKET", "groceries"),
)

RUSSIAN_EXAMPLES = (
    ("МАГНУМ ТОО", "groceries"),
    ("GLOVO ДОСТАВКА", "food_delivery"),
    ("KASPI GOLD ПЕРЕВОД", "transfer"),
    ("ЯНДЕКС ТАКСИ", "transport"),
    ("WOLT ORDER", "food_delivery"),
)

CATEGORY_DESCRIPTIONS = {
    "groceries": "supermarket, food shopping, продукты, магазин",
    "food_delivery": "Glovo, Wolt, Yandex Eats, delivery services",
    "restaurants": "restaurants, cafes, coffee shops, рестораны, кафе",
    "transport": "taxi, bus, metro, fuel, parking, такси, транспорт",
    "utilities": "electricity, water, internet, mobile bills, коммуналка",
    "entertainment": "cinema, streaming, games, subscriptions",
    "shopping": "online shopping, retail stores, покупки",
    "healthcare": "pharmacy, clinic, dentist, аптека",
    "transfer": "money transfers, bank transfers, ATM, переводы",
    "salary": "salary, pension, dividends, зарплата",
}

ENRICHMENT_PROMPT = """You are a financial transaction merchant enrichment specialist.

Task: Extract clean merchant name from transaction description.

Input: "{description}"
Normalized by rules: "{normalized}"

Extract:
1. cleanMerchantName - The brand name (e.g., "Starbucks" not "SBUX")
2. brandName - Full brand name if different (optional)
3. merchantType - One of: {merchant_types}
4. mccCode - 4-digit Visa MCC if known (optional)
5. confidence - 0.0 to 1.0

Examples:
- "SBUX #1234" -> {{"cleanMerchantName": "Starbucks", "merchantType": "COFFEE_SHOP", "mccCode": "5814", "confidence": 0.95}}
- "МАГНУМ ТОО" -> {{"cleanMerchantName": "Magnum Cash & Carry", "brandName": "Magnum", "merchantType": "GROCERY", "confidence": 0.92}}

Return JSON only:
{{"cleanMerchantName": "...", "merchantType": "...", "confidence": 0.9}}"""

BATCH_PROMPT = """You are a financial transaction categorizer. Categorize ALL transactions below.

## Example categorizations:
{examples}

## Transactions to categorize:
{transactions}

## Available categories:
{categories}

## Response format
Return a JSON array with: index, categoryId, confidence (0.0-1.0).
Use only the available category ids.

Example output:
[{{"index": 0, "categoryId": "groceries", "confidence": 0.95}}, {{"index": 1, "categoryId": "transport", "confidence": 0.88}}]

Return ONLY the JSON array, no additional text."""


def examples_for(language: str) -> tuple[tuple[str, str], ...]:
    if language.lower() in {"ru", "kk"}:
        return RUSSIAN_EXAMPLES
    return ENGLISH_EXAMPLES


def category_hints(categories: list[str]) -> str:
    if not categories:
        return "No existing categories. Suggest the category id that fits best."
    lines = []
    for category in categories:
        hint = CATEGORY_DESCRIPTIONS.get(category)
        lines.append(f"- {category} ({hint})" if hint else f"- {category}")
    return "\n".join(lines)


def build_batch_prompt(descriptions: list[str], categories: list[str], language: str = "en") -> str:
    examples = "\n".join(
        f'{i}. "{text}" -> {category}'
        for i, (text, category) in enumerate(examples_for(language)[:3])
    )
    transactions = "\n".join(f'{i}: "{text}"' for i, text in enumerate(descriptions))
    return BATCH_PROMPT.format(
        examples=examples,
        transactions=transactions,
        categories=category_hints(categories),
    )
