from dataclasses import dataclass, field, asdict
from typing import Optional
import pendulum

from .errors import CryptoError, InvalidInputError


def _now() -> str:
    return pendulum.now().to_iso8601_string()


@dataclass
class Credential:
    """
    A login for a service.

    `service` and `username` are searchable and never encrypted. `password`
    holds ciphertext while travelling to or from the remote vault and
    plaintext everywhere else.
    """
    service: str
    username: str = ''
    password: str = ''
    iv: Optional[str] = None
    id: str = ''
    created: str = field(default_factory=_now)
    modified: str = field(default_factory=_now)
    # Set when this single entry could not be decrypted
    error: Optional[CryptoError] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.service, str):
            raise TypeError("Service must be a string")

        self.service = self.service.strip()
        if not self.service:
            raise InvalidInputError("Service cannot be empty")

    def __repr__(self):
        return (
            f"Credential(id={self.id}, "
            f"service={self.service}, "
            f"username={self.username}, "
            f"password=<hidden>, "
            f"modified={self.modified})"
        )

    def __str__(self):
        return f"{self.service} - username: {self.username}"

    def to_dict(self) -> dict:
        return {
            "type": "credential",
            "service": self.service,
            "username": self.username,
            "password": self.password,
            "created": self.created,
            "modified": self.modified,
        }

    @classmethod
    def from_dict(cls, data: dict, id: str = '') -> "Credential":
        return cls(
            service=data["service"],
            username=data.get("username", ""),
            password=data.get("password", ""),
            iv=data.get("iv"),
            id=id or str(data.get("id", "")),
            created=data.get("created") or _now(),
            modified=data.get("modified") or data.get("created") or _now(),
        )


@dataclass
class Expiry:
    month: int
    year: int

    def __post_init__(self):
        if not 1 <= int(self.month) <= 12:
            raise InvalidInputError(f"Invalid expiry month: {self.month}")
        self.month = int(self.month)
        self.year = int(self.year)

    def __str__(self):
        return f"{self.month:02d}/{self.year}"

    @classmethod
    def parse(cls, value: str) -> "Expiry":
        """Parse 'MM/YYYY' (or 'M/YYYY')."""
        try:
            month, year = value.strip().split("/")
            return cls(int(month), int(year))
        except ValueError as e:
            raise InvalidInputError(f"Expiry must be MM/YYYY, got '{value}'") from e


@dataclass
class Address:
    street: str
    city: str
    zip: str
    country: str
    state: Optional[str] = None

    def __str__(self):
        parts = [self.street, self.zip, self.city]
        if self.state:
            parts.append(self.state)
        parts.append(self.country)
        return ", ".join(parts)

    @classmethod
    def parse(cls, value: str) -> "Address":
        """Parse 'street, zip, city[, state], country'."""
        parts = [p.strip() for p in value.split(",")]
        if len(parts) == 4:
            street, zip_code, city, country = parts
            return cls(street, city, zip_code, country)
        if len(parts) == 5:
            street, zip_code, city, state, country = parts
            return cls(street, city, zip_code, country, state)
        raise InvalidInputError(
            f"Address must be 'street, zip, city, country', got '{value}'"
        )


@dataclass
class PaymentCard:
    name: str
    name_on_card: str = ''
    number: str = ''
    cvv: str = ''
    expiry: Expiry = field(default_factory=lambda: Expiry(1, pendulum.now().year))
    color: Optional[str] = None
    billing_address: Optional[Address] = None
    iv: Optional[str] = None
    id: str = ''
    created: str = field(default_factory=_now)
    modified: str = field(default_factory=_now)
    error: Optional[CryptoError] = field(default=None, compare=False)

    def __repr__(self):
        return (
            f"PaymentCard(id={self.id}, name={self.name}, "
            f"number=<hidden>, cvv=<hidden>, expiry={self.expiry})"
        )

    def last_four(self) -> str:
        return self.number[-4:]

    def to_dict(self) -> dict:
        return {
            "type": "payment",
            "name": self.name,
            "name_on_card": self.name_on_card,
            "number": self.number,
            "cvv": self.cvv,
            "expiry": asdict(self.expiry),
            "color": self.color,
            "billing_address": asdict(self.billing_address) if self.billing_address else None,
            "created": self.created,
            "modified": self.modified,
        }

    @classmethod
    def from_dict(cls, data: dict, id: str = '') -> "PaymentCard":
        address = data.get("billing_address") or data.get("billingAddress")
        if address:
            address = Address(
                street=address["street"],
                city=address["city"],
                zip=address["zip"],
                country=address["country"],
                state=address.get("state"),
            )
        expiry = data["expiry"]
        return cls(
            name=data["name"],
            name_on_card=data.get("name_on_card", data.get("nameOnCard", "")),
            number=data.get("number", ""),
            cvv=data.get("cvv", ""),
            expiry=Expiry(expiry["month"], expiry["year"]),
            color=data.get("color"),
            billing_address=address or None,
            iv=data.get("iv"),
            id=id or str(data.get("id", "")),
            created=data.get("created") or _now(),
            modified=data.get("modified") or data.get("created") or _now(),
        )


@dataclass
class Note:
    title: str
    content: str = ''
    iv: Optional[str] = None
    id: str = ''
    created: str = field(default_factory=_now)
    modified: str = field(default_factory=_now)
    error: Optional[CryptoError] = field(default=None, compare=False)

    def __repr__(self):
        return f"Note(id={self.id}, title={self.title}, content=<hidden>)"

    def to_dict(self) -> dict:
        return {
            "type": "note",
            "title": self.title,
            "content": self.content,
            "created": self.created,
            "modified": self.modified,
        }

    @classmethod
    def from_dict(cls, data: dict, id: str = '') -> "Note":
        return cls(
            title=data["title"],
            content=data.get("content", ""),
            iv=data.get("iv"),
            id=id or str(data.get("id", "")),
            created=data.get("created") or _now(),
            modified=data.get("modified") or data.get("created") or _now(),
        )


@dataclass
class Totp:
    """
    An authenticator entry.

    `secret` is the shared HMAC key, either base32 text or plain text as
    given by `encoding`. It has no field-level envelope; the vault that
    stores it is responsible for confidentiality.
    """
    label: str
    secret: str
    issuer: str = ''
    algorithm: str = "SHA1"
    period_seconds: int = 30
    digits: int = 6
    encoding: str = "base32"
    id: str = ''
    created: str = field(default_factory=_now)
    modified: str = field(default_factory=_now)

    def __repr__(self):
        return (
            f"Totp(id={self.id}, label={self.label}, issuer={self.issuer}, "
            f"secret=<hidden>, algorithm={self.algorithm}, digits={self.digits})"
        )

    def to_dict(self) -> dict:
        return {
            "type": "totp",
            "label": self.label,
            "issuer": self.issuer,
            "secret": self.secret,
            "algorithm": self.algorithm,
            "period_seconds": self.period_seconds,
            "digits": self.digits,
            "encoding": self.encoding,
            "created": self.created,
            "modified": self.modified,
        }

    @classmethod
    def from_dict(cls, data: dict, id: str = '') -> "Totp":
        return cls(
            label=data["label"],
            secret=data["secret"],
            issuer=data.get("issuer", ""),
            algorithm=data.get("algorithm", "SHA1"),
            period_seconds=int(data.get("period_seconds", 30)),
            digits=int(data.get("digits", 6)),
            encoding=data.get("encoding", "base32"),
            id=id or str(data.get("id", "")),
            created=data.get("created") or _now(),
            modified=data.get("modified") or data.get("created") or _now(),
        )


ENTITY_TYPES = {
    "credential": Credential,
    "payment": PaymentCard,
    "note": Note,
    "totp": Totp,
}


def entity_type(entity) -> str:
    """Return the container type tag for an entity instance."""
    for tag, cls in ENTITY_TYPES.items():
        if isinstance(entity, cls):
            return tag
    raise TypeError(f"Not a vault entity: {type(entity).__name__}")


def from_record(eid: str, data: dict):
    """Rebuild an entity from a decrypted container record."""
    try:
        cls = ENTITY_TYPES[data["type"]]
    except KeyError as e:
        raise CryptoError(f"Entry {eid} has an unknown type") from e
    return cls.from_dict(data, id=eid)
