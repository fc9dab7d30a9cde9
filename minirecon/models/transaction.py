"""Transaction models for the reconciliation engine."""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple, Union

# Fields the matcher knows about; anything else rides along in ``extra``
KNOWN_FIELDS = ("reference", "amount", "status", "date", "description")

# Column name used by the upstream CSV/JSON parsers for the join key
LEGACY_REFERENCE_FIELD = "transaction_reference"

FieldValue = Union[str, int, float, None]


@dataclass
class Transaction:
    """
    One financial event as handed over by a file parser.

    ``amount`` is usually a float but parsers may pass numeric strings through;
    the matcher coerces when comparing. ``date`` is an opaque string.
    """
    reference: str
    amount: Optional[Union[float, str]] = None
    status: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None

    # Unrecognized columns, passed through and never compared
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """Reference normalized for lookups."""
        if self.reference is None:
            return ""
        return str(self.reference).strip()

    def get(self, name: str) -> FieldValue:
        """Return a known field or a passthrough column by name."""
        if name in KNOWN_FIELDS:
            return getattr(self, name)
        return self.extra.get(name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = dict(self.extra)
        data.update({
            "reference": self.reference,
            "amount": self.amount,
            "status": self.status,
            "date": self.date,
            "description": self.description,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Build from a parsed row. Accepts ``transaction_reference`` for the key."""
        row = dict(data)
        if "reference" in row:
            reference = row.pop("reference")
        else:
            reference = row.pop(LEGACY_REFERENCE_FIELD, None)

        return cls(
            reference="" if reference is None else str(reference),
            amount=row.pop("amount", None),
            status=row.pop("status", None),
            date=row.pop("date", None),
            description=row.pop("description", None),
            extra=row,
        )


@dataclass
class ParsedFile:
    """Output of a file-parsing collaborator."""
    name: str
    data: List[Transaction] = field(default_factory=list)
    headers: List[str] = field(default_factory=list)
    size: int = 0  # bytes

    @property
    def record_count(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "data": [txn.to_dict() for txn in self.data],
            "headers": list(self.headers),
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedFile":
        return cls(
            name=data["name"],
            data=[Transaction.from_dict(row) for row in data.get("data", [])],
            headers=list(data.get("headers", [])),
            size=data.get("size", 0),
        )


@dataclass(frozen=True)
class FieldMismatch:
    """A disagreement on one compared field inside a matched pair."""
    field: str
    internal_value: FieldValue
    provider_value: FieldValue

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "internal_value": self.internal_value,
            "provider_value": self.provider_value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMismatch":
        return cls(
            field=data["field"],
            internal_value=data.get("internal_value"),
            provider_value=data.get("provider_value"),
        )


@dataclass(frozen=True)
class TransactionMatch:
    """
    An internal and a provider transaction sharing a reference.
    An empty ``mismatches`` tuple means a perfect match.
    """
    internal: Transaction
    provider: Transaction
    mismatches: Tuple[FieldMismatch, ...] = ()

    @property
    def reference(self) -> str:
        return self.internal.key

    @property
    def is_perfect(self) -> bool:
        return not self.mismatches

    @property
    def mismatched_fields(self) -> List[str]:
        return [m.field for m in self.mismatches]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "internal": self.internal.to_dict(),
            "provider": self.provider.to_dict(),
            "mismatches": [m.to_dict() for m in self.mismatches],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionMatch":
        return cls(
            internal=Transaction.from_dict(data["internal"]),
            provider=Transaction.from_dict(data["provider"]),
            mismatches=tuple(
                FieldMismatch.from_dict(m) for m in data.get("mismatches", [])
            ),
        )
