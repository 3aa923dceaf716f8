from typing import Any

CURRENT_SCHEMA_VERSION = 3


class Config:
    _instance = None

    def __new__(cls, *args: Any, **kwargs: Any) -> "Config":
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls, *args, **kwargs)
        return cls._instance

    def __init__(self) -> None:
        if not hasattr(self, "_initialized"):
            self._initialized = True  # Prevents reinitialization
            self._schema_version = CURRENT_SCHEMA_VERSION
            self._validate_on_load = False
            self._unstable_operations = False
            self._matrix_atol = 1e-8

    def set_schema_version(self, schema_version: int) -> None:
        """
        Sets the schema version the serializers write by default

        Parameters
        ----------
        schema_version: int
            Wire schema version, must be between 1 and the current version
        """
        schema_version = int(schema_version)
        if schema_version < 1 or schema_version > CURRENT_SCHEMA_VERSION:
            raise ValueError(
                f"Schema version must be in [1, {CURRENT_SCHEMA_VERSION}], "
                f"got {schema_version}"
            )
        self._schema_version = schema_version

    @property
    def schema_version(self) -> int:
        return self._schema_version

    @property
    def validate_on_load(self) -> bool:
        return self._validate_on_load

    def set_validate_on_load(self, validate: bool) -> None:
        self._validate_on_load = bool(validate)

    @property
    def unstable_operations(self) -> bool:
        return self._unstable_operations

    def set_unstable_operations(self, unstable: bool) -> None:
        self._unstable_operations = bool(unstable)

    @property
    def matrix_atol(self) -> float:
        return self._matrix_atol

    def set_matrix_atol(self, atol: float) -> None:
        self._matrix_atol = float(atol)


class Session:
    """
    Lightweight context manager to scope Config settings per run.

    Example:
        with Session(unstable_operations=True, schema_version=2):
            ...
    Restores previous Config values on exit so tests/runs stay isolated.
    """

    def __init__(
        self,
        *,
        schema_version: int | None = None,
        validate_on_load: bool | None = None,
        unstable_operations: bool | None = None,
        matrix_atol: float | None = None,
    ) -> None:
        cfg = Config()
        self._prev = {
            "schema_version": cfg.schema_version,
            "validate_on_load": cfg.validate_on_load,
            "unstable_operations": cfg.unstable_operations,
            "matrix_atol": cfg.matrix_atol,
        }
        self._schema_version = schema_version
        self._validate_on_load = validate_on_load
        self._unstable_operations = unstable_operations
        self._matrix_atol = matrix_atol
        self._cfg = cfg

    def __enter__(self) -> "Config":
        if self._schema_version is not None:
            self._cfg.set_schema_version(self._schema_version)
        if self._validate_on_load is not None:
            self._cfg.set_validate_on_load(self._validate_on_load)
        if self._unstable_operations is not None:
            self._cfg.set_unstable_operations(self._unstable_operations)
        if self._matrix_atol is not None:
            self._cfg.set_matrix_atol(self._matrix_atol)
        return self._cfg

    def __exit__(self, exc_type, exc, tb) -> None:
        self._cfg.set_schema_version(self._prev["schema_version"])
        self._cfg.set_validate_on_load(self._prev["validate_on_load"])
        self._cfg.set_unstable_operations(self._prev["unstable_operations"])
        self._cfg.set_matrix_atol(self._prev["matrix_atol"])
