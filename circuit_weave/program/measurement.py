"""
Measurement of products of PauliZ operators

A `PauliZProduct` measurement runs a list of circuits, each ending in
measurements into bit registers, and turns the measured bits into
expectation values of PauliZ products and of linear combinations of them.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from circuit_weave.circuit.circuit import Circuit

MEASUREMENT_TAG = "PauliZProduct"


class PauliZProductInput:
    """
    Products to evaluate from the measured registers

    Parameters
    ----------
    number_qubits: int
        Number of qubits the measured registers cover
    use_flipped_measurement: bool
        Whether every readout register has a partner `<readout>_flipped`
        measured after flipping all qubits. Flipped results are averaged
        in to cancel readout bias.

    Notes
    -----
    Products are numbered across all readout registers in the order they
    are added. A product over no qubit is the identity and evaluates to 1.
    """

    def __init__(self, number_qubits: int, use_flipped_measurement: bool = False) -> None:
        if isinstance(number_qubits, bool) or not isinstance(number_qubits, int):
            raise TypeError("number_qubits must be an integer")
        if number_qubits < 0:
            raise ValueError(f"number_qubits must be non-negative, got {number_qubits}")
        self.number_qubits = number_qubits
        self.use_flipped_measurement = bool(use_flipped_measurement)
        self.pauli_product_qubit_indices: Dict[str, Dict[int, Tuple[int, ...]]] = {}
        self.measured_exp_vals: Dict[str, Dict[int, float]] = {}
        self._number_products = 0

    @property
    def number_pauli_products(self) -> int:
        return self._number_products

    def add_pauliz_product(self, readout: str, pauli_product_mask: Sequence[int] = ()) -> int:
        """
        Adds the product of PauliZ on the qubits in `pauli_product_mask`,
        read from register `readout`

        Returns
        -------
        int
            Index of the new product

        Raises
        ------
        ValueError
            If a qubit is outside the input or listed twice
        """
        mask = tuple(int(qubit) for qubit in pauli_product_mask)
        if len(set(mask)) != len(mask):
            raise ValueError(f"Duplicated qubits in the product mask {mask}")
        for qubit in mask:
            if not 0 <= qubit < self.number_qubits:
                raise ValueError(
                    f"Qubit {qubit} is outside the {self.number_qubits} measured qubits"
                )
        index = self._number_products
        self.pauli_product_qubit_indices.setdefault(readout, {})[index] = mask
        self._number_products += 1
        return index

    def add_linear_exp_val(self, name: str, linear: Mapping[int, float]) -> None:
        """
        Adds the expectation value `name` as a weighted sum of products

        Raises
        ------
        ValueError
            If the name is already used or a product index is unknown
        """
        if name in self.measured_exp_vals:
            raise ValueError(f"Expectation value '{name}' is already defined")
        for index in linear:
            if not 0 <= index < self._number_products:
                raise ValueError(f"Unknown Pauli product index {index}")
        self.measured_exp_vals[name] = {int(k): float(v) for k, v in linear.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PauliZProductInput):
            return NotImplemented
        return (
            self.number_qubits == other.number_qubits
            and self.use_flipped_measurement == other.use_flipped_measurement
            and self.pauli_product_qubit_indices == other.pauli_product_qubit_indices
            and self.measured_exp_vals == other.measured_exp_vals
        )

    def __repr__(self) -> str:
        return (
            f"PauliZProductInput(number_qubits={self.number_qubits}, "
            f"use_flipped_measurement={self.use_flipped_measurement}, "
            f"products={self.pauli_product_qubit_indices!r}, "
            f"exp_vals={self.measured_exp_vals!r})"
        )


def _product_values(bits: np.ndarray, mask: Tuple[int, ...]) -> float:
    """Mean of (-1)^parity over all shots"""
    if not mask:
        return 1.0
    parity = np.sum(bits[:, list(mask)], axis=1) % 2
    return float(np.mean(1 - 2 * parity))


def _register_bits(
    registers: Mapping[str, Sequence[Sequence[bool]]], name: str, number_qubits: int
) -> np.ndarray:
    if name not in registers:
        raise KeyError(f"Missing measured register '{name}'")
    bits = np.asarray(registers[name], dtype=bool)
    if bits.ndim != 2 or bits.shape[0] == 0:
        raise ValueError(f"Register '{name}' must hold at least one shot of bits")
    if bits.shape[1] < number_qubits:
        raise ValueError(
            f"Register '{name}' has {bits.shape[1]} bits per shot, "
            f"{number_qubits} are needed"
        )
    return bits


class PauliZProduct:
    """
    Circuits and evaluation rule of a PauliZ product measurement

    Parameters
    ----------
    input: PauliZProductInput
        Products and expectation values to evaluate
    circuits: Sequence[Circuit]
        Circuits to run, each one is appended to `constant_circuit`
    constant_circuit: Optional[Circuit]
        Circuit run before every circuit of `circuits`
    """

    def __init__(
        self,
        input: PauliZProductInput,
        circuits: Sequence[Circuit],
        constant_circuit: Optional[Circuit] = None,
    ) -> None:
        if not isinstance(input, PauliZProductInput):
            raise TypeError("input must be a PauliZProductInput")
        circuits = list(circuits)
        checked = circuits if constant_circuit is None else circuits + [constant_circuit]
        for circuit in checked:
            if not isinstance(circuit, Circuit):
                raise TypeError(f"Expected a Circuit, got {type(circuit).__name__}")
        self.input = input
        self.circuits: List[Circuit] = [circuit.copy() for circuit in circuits]
        self.constant_circuit = None if constant_circuit is None else constant_circuit.copy()

    @property
    def tag(self) -> str:
        return MEASUREMENT_TAG

    def circuits_to_run(self) -> List[Circuit]:
        """
        Returns every circuit prefixed with the constant circuit
        """
        if self.constant_circuit is None:
            return [circuit.copy() for circuit in self.circuits]
        return [self.constant_circuit + circuit for circuit in self.circuits]

    def substitute_parameters(self, mapping: Mapping[str, float]) -> "PauliZProduct":
        """
        Returns the measurement with the free variables of every circuit
        substituted

        Raises
        ------
        UnevaluatedParameterError
            If a circuit keeps a free variable
        """
        return PauliZProduct(
            self.input,
            [circuit.substitute_parameters(mapping) for circuit in self.circuits],
            None
            if self.constant_circuit is None
            else self.constant_circuit.substitute_parameters(mapping),
        )

    def evaluate(
        self, registers: Mapping[str, Sequence[Sequence[bool]]]
    ) -> Dict[str, float]:
        """
        Computes the expectation values from measured bit registers

        Parameters
        ----------
        registers: Mapping[str, Sequence[Sequence[bool]]]
            Register names mapped to one row of bits per shot

        Returns
        -------
        Dict[str, float]
            Expectation value names mapped to their values

        Raises
        ------
        KeyError
            If a readout register, or its flipped partner, was not measured
        ValueError
            If a register holds no shot or too few bits
        """
        number_qubits = self.input.number_qubits
        products: Dict[int, float] = {}
        for readout, masks in self.input.pauli_product_qubit_indices.items():
            bits = _register_bits(registers, readout, number_qubits)
            flipped = None
            if self.input.use_flipped_measurement:
                flipped = ~_register_bits(registers, f"{readout}_flipped", number_qubits)
            for index, mask in masks.items():
                value = _product_values(bits, mask)
                if flipped is not None:
                    value = (value + _product_values(flipped, mask)) / 2
                products[index] = value
        return {
            name: float(sum(weight * products[index] for index, weight in linear.items()))
            for name, linear in self.input.measured_exp_vals.items()
        }

    def min_supported_version(self) -> int:
        circuits = list(self.circuits)
        if self.constant_circuit is not None:
            circuits.append(self.constant_circuit)
        return max((circuit.min_supported_version() for circuit in circuits), default=1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PauliZProduct):
            return NotImplemented
        return (
            self.input == other.input
            and self.circuits == other.circuits
            and self.constant_circuit == other.constant_circuit
        )

    def __repr__(self) -> str:
        return (
            f"PauliZProduct(input={self.input!r}, circuits={self.circuits!r}, "
            f"constant_circuit={self.constant_circuit!r})"
        )
