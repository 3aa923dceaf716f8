"""
Quantum program: a measurement with named free parameters
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from circuit_weave.circuit.circuit import Circuit
from circuit_weave.program.measurement import PauliZProduct

logger = logging.getLogger(__name__)


class QuantumProgram:
    """
    Circuits of a measurement and the ordered names of their free
    parameters

    A program is run by substituting a list of values, one per name,
    into every circuit of the measurement and evaluating the measured
    registers.

    Parameters
    ----------
    measurement: PauliZProduct
        Measured circuits and their evaluation rule
    input_parameter_names: Sequence[str]
        Names of the free variables, in the order values are passed

    Raises
    ------
    TypeError
        If a name is not a string
    ValueError
        If a name appears twice
    """

    def __init__(
        self, measurement: PauliZProduct, input_parameter_names: Sequence[str]
    ) -> None:
        if not isinstance(measurement, PauliZProduct):
            raise TypeError("measurement must be a PauliZProduct")
        names = list(input_parameter_names)
        if not all(isinstance(name, str) for name in names):
            raise TypeError("input_parameter_names must be strings")
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicated input parameter names {names}")
        self.measurement = measurement
        self.input_parameter_names: List[str] = names

    def _mapping(self, parameters: Sequence[float]) -> Dict[str, float]:
        values = list(parameters)
        if len(values) != len(self.input_parameter_names):
            raise ValueError(
                f"Expected {len(self.input_parameter_names)} parameters, got {len(values)}"
            )
        return dict(zip(self.input_parameter_names, values))

    def substituted_measurement(self, parameters: Sequence[float]) -> PauliZProduct:
        """
        Returns the measurement with `parameters` substituted for the
        input parameter names

        Raises
        ------
        ValueError
            If the number of values does not match the number of names
        UnevaluatedParameterError
            If a circuit uses a variable that is not an input parameter
        """
        mapping = self._mapping(parameters)
        logger.debug(
            "Substituting %d program parameters",
            len(mapping),
            extra={"parameters": sorted(mapping)},
        )
        return self.measurement.substitute_parameters(mapping)

    def circuits(self, parameters: Sequence[float]) -> List[Circuit]:
        """
        Returns the circuits to run for `parameters`, each prefixed with
        the constant circuit
        """
        return self.substituted_measurement(parameters).circuits_to_run()

    def evaluate(
        self, registers: Mapping[str, Sequence[Sequence[bool]]]
    ) -> Dict[str, float]:
        return self.measurement.evaluate(registers)

    def min_supported_version(self) -> int:
        return self.measurement.min_supported_version()

    def to_json(self, schema_version: Optional[int] = None, minimal: bool = False) -> str:
        from circuit_weave.serialization import to_json

        return to_json(self, schema_version=schema_version, minimal=minimal)

    @staticmethod
    def from_json(data: str, registry: Any = None) -> "QuantumProgram":
        from circuit_weave.serialization import from_json

        program = from_json(data, registry=registry)
        if not isinstance(program, QuantumProgram):
            raise TypeError(
                f"Expected a serialized QuantumProgram, got {type(program).__name__}"
            )
        return program

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QuantumProgram):
            return NotImplemented
        return (
            self.measurement == other.measurement
            and self.input_parameter_names == other.input_parameter_names
        )

    def __repr__(self) -> str:
        return (
            f"QuantumProgram(measurement={self.measurement!r}, "
            f"input_parameter_names={self.input_parameter_names!r})"
        )
