from .numeric_parameter import NumericParameter, ParameterLike  # noqa: F401
