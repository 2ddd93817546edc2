# app/core/receipts/parser.py
"""
Pull the useful bits out of receipt text that OCR already extracted.

Only plain regexes: total, date, merchant and item lines.
Anything not found stays None / empty, parsing never fails.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

# "1,234.56" (grouped) or "12.50" / "12,50"
AMOUNT = r"(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:[.,]\d{1,2})?)"
GROUPED_AMOUNT = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?$")

# Checked in order, first hit wins
TOTAL_PATTERNS = [
    re.compile(r"grand\s*total\s*:?\s*\$?\s*" + AMOUNT, re.IGNORECASE),
    re.compile(r"\btotal\s*:?\s*\$?\s*" + AMOUNT, re.IGNORECASE),
    re.compile(r"\bamount\s*:?\s*\$?\s*" + AMOUNT, re.IGNORECASE),
]

DATE_PATTERNS = [
    re.compile(r"(\d{1,2}/\d{1,2}/\d{2,4})"),
    re.compile(r"(\d{4}-\d{2}-\d{2})"),
    re.compile(r"(\d{1,2}-\d{1,2}-\d{2,4})"),
]

MERCHANT_PATTERNS = [
    re.compile(r"^([A-Z][A-Z\s&']+)$"),  # WHOLE FOODS MARKET
    re.compile(r"^([A-Z][a-z\s&']+)$"),  # Corner bakery
]

# "Milk 2.49", "BREAD  3,10", "TV 1,199.00"
ITEM_PATTERN = re.compile(
    r"^(.*?[A-Za-z].*?)\s+\$?(\d{1,3}(?:,\d{3})+\.\d{2}|\d+[.,]\d{2})$"
)

SUMMARY_WORDS = ("total", "subtotal", "tax", "change", "cash", "amount", "balance")

MERCHANT_SCAN_LINES = 5


@dataclass
class ReceiptItem:
    name: str
    price: Decimal


@dataclass
class ReceiptData:
    total: Optional[Decimal] = None
    date: Optional[str] = None
    merchant: Optional[str] = None
    items: List[ReceiptItem] = field(default_factory=list)


def _to_decimal(raw: str) -> Optional[Decimal]:
    try:
        if GROUPED_AMOUNT.match(raw):
            return Decimal(raw.replace(",", ""))
        return Decimal(raw.replace(",", "."))
    except InvalidOperation:
        return None


def extract_total(text: str) -> Optional[Decimal]:
    for pattern in TOTAL_PATTERNS:
        match = pattern.search(text)
        if match:
            return _to_decimal(match.group(1))
    return None


def extract_date(text: str) -> Optional[str]:
    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def extract_merchant(lines: List[str]) -> Optional[str]:
    # Store name is usually printed at the top
    for line in lines[:MERCHANT_SCAN_LINES]:
        for pattern in MERCHANT_PATTERNS:
            match = pattern.match(line)
            if match:
                name = match.group(1).strip()
                if 3 < len(name) < 50:
                    return name
    return None


def extract_items(lines: List[str]) -> List[ReceiptItem]:
    items = []
    for line in lines:
        match = ITEM_PATTERN.match(line)
        if not match:
            continue
        name = match.group(1).strip(" .:-")
        if not name or name.lower().startswith(SUMMARY_WORDS) or "total" in name.lower():
            continue
        price = _to_decimal(match.group(2))
        if price is not None:
            items.append(ReceiptItem(name=name, price=price))
    return items


def parse_receipt_text(text: str) -> ReceiptData:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return ReceiptData(
        total=extract_total(text),
        date=extract_date(text),
        merchant=extract_merchant(lines),
        items=extract_items(lines),
    )
