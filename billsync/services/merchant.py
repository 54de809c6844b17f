"""
Merchant details carried inside a Bill.com line item description.

Check Request line items for reimbursed expenses record where the money was
spent. Bill.com line items have no fields for that, so the creation job packs
them into the description as five lines:

    2021-03-04
    Corner Hardware
    12 Main St
    Springfield | IL | 62701
    Paint for the community room

and the reporting sync unpacks them again.
"""
import re
from dataclasses import dataclass
from typing import Optional

MERCHANT_PATTERN = re.compile(
    r"(?P<date>.+)\n(?P<name>.+)\n(?P<address>.+)\n"
    r"(?P<city>.+) \| (?P<state>.+) \| (?P<zip>.+)\n"
    r"(?P<description>.+)"
)


@dataclass
class MerchantInfo:
    date: str
    name: str
    address: str
    city: str
    state: str
    zip: str
    description: str


LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


def _flatten(value: Optional[str]) -> str:
    return LINE_BREAKS.sub(" ", value or "").strip()


def pack(info: MerchantInfo) -> str:
    """
    Pack merchant details so that parse() reads them back.

    Line breaks inside a part become single spaces. Raises ValueError naming
    the parts that are empty, since parse() needs every one of them.
    """
    parts = {name: _flatten(value) for name, value in vars(info).items()}
    missing = [name for name, value in parts.items() if not value]
    if missing:
        raise ValueError(f"Missing merchant {', '.join(missing)}")
    return (
        "{date}\n{name}\n{address}\n"
        "{city} | {state} | {zip}\n{description}"
    ).format(**parts)


def parse(description: Optional[str]) -> Optional[MerchantInfo]:
    """
    Unpack merchant details, or None when the description is not a merchant
    block. All seven parts must be present; nothing is extracted from a
    partial match.
    """
    if not description:
        return None
    match = MERCHANT_PATTERN.search(description)
    if match is None:
        return None
    return MerchantInfo(**match.groupdict())
