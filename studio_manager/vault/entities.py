"""Entity kinds carrying sensitive fields.

Each kind declares its table and which columns hold secrets. Table and
column names are only ever taken from this registry when building SQL.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class EntityKind:
    """Declarative description of a record type with sensitive columns.

    Attributes:
        name: Registry key.
        table: Table holding the records.
        fields: Sensitive column names, in display order.
        primary_field: Column checked to decide whether a row is already
            encrypted, and the first place unlock looks for a sample.
    """

    name: str
    table: str
    fields: tuple
    primary_field: str

    def __post_init__(self):
        if self.primary_field not in self.fields:
            raise ValueError(
                f"primary_field {self.primary_field!r} is not one of "
                f"{self.name} sensitive fields"
            )


FISCAL_DRAWER = EntityKind(
    name="fiscal_drawer",
    table="tbcassetti_fiscali",
    fields=("username", "password1", "password2", "pin", "pw_iniziale"),
    primary_field="password1",
)

PORTAL_CREDENTIAL = EntityKind(
    name="portal_credential",
    table="tbcredenziali_accesso",
    fields=("login_utente", "login_pw", "login_pin"),
    primary_field="login_pw",
)

CLIENT = EntityKind(
    name="client",
    table="tbclienti",
    fields=(
        "codice_fiscale",
        "partita_iva",
        "matricola_inps",
        "pat_inail",
        "codice_ditta_ce",
        "note",
    ),
    primary_field="codice_fiscale",
)

# Unlock samples fiscal drawers first.
ENTITY_KINDS = {
    kind.name: kind for kind in (FISCAL_DRAWER, PORTAL_CREDENTIAL, CLIENT)
}


def get_kind(name: str) -> EntityKind:
    """Look up an entity kind by name.

    Raises:
        KeyError: If the kind is not registered.
    """
    try:
        return ENTITY_KINDS[name]
    except KeyError:
        raise KeyError(f"Unknown entity kind: {name}") from None
