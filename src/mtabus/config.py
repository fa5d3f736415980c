"""Client configuration for mtabus."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping

from mtabus.exceptions import ConfigurationError

PROJECT_ID_PROPERTY = "bigtable.projectID"
INSTANCE_ID_PROPERTY = "bigtable.instanceID"
TABLE_PROPERTY = "bigtable.table"
QUERY_PROPERTY = "query"
APP_PROFILE_ID_PROPERTY = "bigtable.appProfileID"

# Checked in this order; the first missing one is reported.
REQUIRED_PROPERTIES: tuple[str, ...] = (
    PROJECT_ID_PROPERTY,
    INSTANCE_ID_PROPERTY,
    TABLE_PROPERTY,
    QUERY_PROPERTY,
)

_ENV_FALLBACKS: dict[str, str] = {
    PROJECT_ID_PROPERTY: "BIGTABLE_PROJECT_ID",
    INSTANCE_ID_PROPERTY: "BIGTABLE_INSTANCE_ID",
    TABLE_PROPERTY: "BIGTABLE_TABLE",
    QUERY_PROPERTY: "MTABUS_QUERY",
    APP_PROFILE_ID_PROPERTY: "BIGTABLE_APP_PROFILE_ID",
}


def parse_property(text: str) -> tuple[str, str]:
    """Split a ``name=value`` property definition.

    Raises :class:`ValueError` when there is no ``=`` or the name is empty.
    """
    name, sep, value = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"expected NAME=VALUE, got {text!r}")
    return name, value


@dataclasses.dataclass(frozen=True)
class CodelabConfig:
    """Where to read from and which query to run.

    Parameters
    ----------
    project_id : str
        Cloud project hosting the Bigtable instance.
    instance_id : str
        Bigtable instance identifier.
    table : str
        Table name within the instance.
    query : str
        Name of the catalog query to run.
    app_profile_id : str or None
        Optional Bigtable app profile used for routing reads.
    """

    project_id: str
    instance_id: str
    table: str
    query: str
    app_profile_id: str | None = None

    @classmethod
    def from_properties(
        cls,
        properties: Mapping[str, str],
        env: Mapping[str, str] | None = None,
    ) -> CodelabConfig:
        """Create configuration from ``-D`` style properties.

        Each property falls back to its environment variable
        (``BIGTABLE_PROJECT_ID``, ``BIGTABLE_INSTANCE_ID``,
        ``BIGTABLE_TABLE``, ``MTABUS_QUERY``, ``BIGTABLE_APP_PROFILE_ID``).
        Explicit properties take precedence.

        Raises
        ------
        ConfigurationError
            If a required value is absent from both sources.
        """
        environ = os.environ if env is None else env

        def lookup(name: str) -> str | None:
            value = properties.get(name)
            if value is None:
                value = environ.get(_ENV_FALLBACKS[name])
            return value

        values: dict[str, str] = {}
        for name in REQUIRED_PROPERTIES:
            value = lookup(name)
            if value is None:
                raise ConfigurationError(f"Missing required system property: {name}", name=name)
            values[name] = value

        return cls(
            project_id=values[PROJECT_ID_PROPERTY],
            instance_id=values[INSTANCE_ID_PROPERTY],
            table=values[TABLE_PROPERTY],
            query=values[QUERY_PROPERTY],
            app_profile_id=lookup(APP_PROFILE_ID_PROPERTY) or None,
        )
