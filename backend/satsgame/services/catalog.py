"""Static metadata for tradable assets. Prices live in the assets table."""

ASSET_METADATA = {
    # Cryptocurrency
    "BTC": {"name": "Bitcoin", "type": "crypto", "category": "Cryptocurrency"},

    # Technology
    "AAPL": {"name": "Apple Inc.", "type": "stock", "category": "Technology"},
    "MSFT": {"name": "Microsoft Corp.", "type": "stock", "category": "Technology"},
    "GOOGL": {"name": "Alphabet Inc.", "type": "stock", "category": "Technology"},
    "AMZN": {"name": "Amazon.com Inc.", "type": "stock", "category": "Technology"},
    "NVDA": {"name": "NVIDIA Corp.", "type": "stock", "category": "Technology"},
    "TSLA": {"name": "Tesla Inc.", "type": "stock", "category": "Technology"},
    "META": {"name": "Meta Platforms Inc.", "type": "stock", "category": "Technology"},
    "NFLX": {"name": "Netflix Inc.", "type": "stock", "category": "Technology"},

    # Finance
    "JPM": {"name": "JPMorgan Chase & Co.", "type": "stock", "category": "Finance"},
    "V": {"name": "Visa Inc.", "type": "stock", "category": "Finance"},

    # Healthcare
    "JNJ": {"name": "Johnson & Johnson", "type": "stock", "category": "Healthcare"},
    "PFE": {"name": "Pfizer Inc.", "type": "stock", "category": "Healthcare"},

    # Consumer
    "KO": {"name": "Coca-Cola Co.", "type": "stock", "category": "Consumer Goods"},
    "MCD": {"name": "McDonald's Corp.", "type": "stock", "category": "Consumer Goods"},

    # Commodities
    "XAU": {"name": "Gold", "type": "commodity", "category": "Precious Metals"},
    "XAG": {"name": "Silver", "type": "commodity", "category": "Precious Metals"},
    "WTI": {"name": "Crude Oil WTI", "type": "commodity", "category": "Energy"},
    "CPER": {"name": "United States Copper Index Fund", "type": "commodity", "category": "Industrial Metals"},
}


def describe_asset(symbol: str) -> dict:
    meta = ASSET_METADATA.get(symbol, {})
    return {
        "symbol": symbol,
        "name": meta.get("name", symbol),
        "type": meta.get("type", "unknown"),
        "category": meta.get("category", "Other"),
    }


def categories() -> list:
    return sorted({m["category"] for m in ASSET_METADATA.values()})
