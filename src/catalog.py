"""Product catalog used to ground the shopping assistant.

The catalog is a read-only data source injected into the HTTP layer. The
chat core only ever sees the system-prompt string built from it.
"""

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

import yaml


@dataclass(frozen=True)
class Product:
    """A storefront product."""

    id: int
    name: str
    description: str
    price: Decimal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Create a Product from a dictionary (YAML-parsed)."""
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            price=Decimal(str(data["price"])),
        )


class ProductCatalog(Protocol):
    def list_products(self) -> List[Product]:
        """Return every product in catalog order."""

    def get_by_id(self, product_id: int) -> Optional[Product]:
        """Return the product with this id, or None."""


class InMemoryCatalog:
    """Catalog held in memory. Never mutated after construction."""

    def __init__(self, products: Iterable[Product]) -> None:
        self._products = tuple(products)

    def list_products(self) -> List[Product]:
        return list(self._products)

    def get_by_id(self, product_id: int) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None


DEFAULT_PRODUCTS = (
    Product(
        1,
        "Wireless Noise-Canceling Headphones",
        "Over-ear Bluetooth headphones with active noise cancellation and 30-hour battery life.",
        Decimal("199.99"),
    ),
    Product(
        2,
        "Smart Fitness Watch",
        "Tracks steps, heart rate, and sleep with a high-resolution AMOLED display.",
        Decimal("149.95"),
    ),
    Product(
        3,
        "4K Action Camera",
        "Waterproof sports camera with 4K video recording and wide-angle lens.",
        Decimal("129.50"),
    ),
    Product(
        4,
        "Bluetooth Speaker",
        "Portable waterproof Bluetooth speaker with deep bass and 12-hour playtime.",
        Decimal("89.99"),
    ),
    Product(
        5,
        "Laptop Stand",
        "Adjustable aluminum stand compatible with all MacBook and Windows laptops.",
        Decimal("39.95"),
    ),
    Product(
        6,
        "Mechanical Keyboard",
        "RGB backlit mechanical keyboard with blue switches and detachable wrist rest.",
        Decimal("99.00"),
    ),
    Product(
        7,
        "Ergonomic Office Chair",
        "High-back mesh chair with adjustable lumbar support and headrest.",
        Decimal("249.00"),
    ),
    Product(
        8,
        "USB-C Hub Docking Station",
        "8-in-1 hub with HDMI, USB 3.0, SD card reader, and 100W PD charging.",
        Decimal("59.99"),
    ),
    Product(
        9,
        "Smart LED Light Bulb",
        "Wi-Fi enabled color-changing LED bulb compatible with Alexa and Google Home.",
        Decimal("24.99"),
    ),
    Product(
        10,
        "Electric Standing Desk",
        "Adjustable height desk with dual motors and memory presets.",
        Decimal("499.00"),
    ),
)


def default_catalog() -> InMemoryCatalog:
    """Return the built-in storefront catalog."""
    return InMemoryCatalog(DEFAULT_PRODUCTS)


def load_catalog(path: Union[str, Path]) -> InMemoryCatalog:
    """Load a catalog from a YAML file with a top-level ``products`` list.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid YAML or entries are malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in catalog file: {exc}") from exc

    entries = raw.get("products", []) if isinstance(raw, dict) else None
    if not isinstance(entries, list):
        raise ValueError("Catalog file must contain a 'products' list")

    try:
        products = [Product.from_dict(entry) for entry in entries]
    except (KeyError, TypeError, ArithmeticError) as exc:
        raise ValueError(f"Malformed product entry: {exc}") from exc
    return InMemoryCatalog(products)


def format_product_context(products: Iterable[Product]) -> str:
    """Render one ``- name: description ($price)`` line per product."""
    return "\n".join(
        "- {}: {} (${:.2f})".format(p.name, p.description, p.price) for p in products
    )


def build_system_prompt(products: Iterable[Product]) -> str:
    """Build the shopping-assistant system prompt grounded in the catalog."""
    return (
        "You are a helpful shopping assistant for ZavaStorefront.\n"
        "You have access to the following products available on the site:\n\n"
        "{}\n\n"
        "Answer customer questions about these products accurately and helpfully.\n"
        "If asked about products not in the list, let them know we don't "
        "currently carry them."
    ).format(format_product_context(products))
