CUSTOMER = "CUSTOMER"
OWNER = "OWNER"

ROLES = [
    (CUSTOMER, "Customer"),
    (OWNER, "Owner"),
]

_ALIASES = {
    "customer": CUSTOMER,
    "user": CUSTOMER,
    "owner": OWNER,
    "seller": OWNER,
}


def parse_role(value: str | None, *, default: str | None = None) -> str:
    """
    Map any spelling of a role ("Seller", "owner", " OWNER ") onto its canonical value.

    Every role comparison in the project goes through here so case never matters.
    """

    key = (value or "").strip().casefold()
    if not key:
        if default is None:
            raise ValueError("Role is required")
        return default
    try:
        return _ALIASES[key]
    except KeyError:
        raise ValueError(f"Unknown role: {value!r}") from None


def is_owner_role(value: str | None) -> bool:
    try:
        return parse_role(value) == OWNER
    except ValueError:
        return False
