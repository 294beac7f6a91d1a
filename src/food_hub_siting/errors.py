# src/food_hub_siting/errors.py


class FoodHubError(Exception):
    """Base class for pipeline errors."""


class SchemaMismatchError(FoodHubError, ValueError):
    """Input table is missing expected columns (or carries unknown ones under a strict schema)."""

    def __init__(self, table: str, missing=(), unexpected=()):
        self.table = table
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        parts = []
        if self.missing:
            parts.append(f"missing columns {self.missing}")
        if self.unexpected:
            parts.append(f"unexpected columns {self.unexpected}")
        super().__init__(f"{table}: " + "; ".join(parts))


class DuplicateKeyError(FoodHubError, ValueError):
    """A key that must be unique occurs more than once."""

    def __init__(self, key: str, duplicates):
        self.key = key
        self.duplicates = list(duplicates)
        shown = self.duplicates[:10]
        more = "" if len(self.duplicates) <= 10 else f" (+{len(self.duplicates) - 10} more)"
        super().__init__(f"Duplicate values for '{key}': {shown}{more}")


class ClusteringError(FoodHubError, ValueError):
    pass


class InsufficientDataError(FoodHubError, ValueError):
    pass


class ConfigError(FoodHubError, ValueError):
    pass
