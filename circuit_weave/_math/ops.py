"""
Matrix realisations of the catalog operations.

All functions take concrete python floats, the symbolic parameters are
evaluated by the operations before they call in here. Multi-qubit matrices
use the qubit order of the gate, the first qubit is the most significant
factor of the Kronecker product.
"""

import cmath
import math
from functools import reduce
from typing import Sequence

import jax
import jax.numpy as jnp
import numpy as np
from jax.scipy.linalg import expm

from circuit_weave.extra import interpreter

jax.config.update("jax_enable_x64", True)

_DTYPE = jnp.complex128


def _matrix(rows) -> jnp.ndarray:
    return jnp.array(rows, dtype=_DTYPE)


def identity_operator(num_qubits: int = 1) -> jnp.ndarray:
    return jnp.identity(2**num_qubits, dtype=_DTYPE)


def x_operator() -> jnp.ndarray:
    return _matrix([[0, 1], [1, 0]])


def y_operator() -> jnp.ndarray:
    return _matrix([[0, -1j], [1j, 0]])


def z_operator() -> jnp.ndarray:
    return _matrix([[1, 0], [0, -1]])


def sigma_plus_operator() -> jnp.ndarray:
    return _matrix([[0, 1], [0, 0]])


def sigma_minus_operator() -> jnp.ndarray:
    return _matrix([[0, 0], [1, 0]])


def hadamard_operator() -> jnp.ndarray:
    return _matrix([[1, 1], [1, -1]]) / jnp.sqrt(2.0)


def s_operator() -> jnp.ndarray:
    return _matrix([[1, 0], [0, 1j]])


def inv_s_operator() -> jnp.ndarray:
    return _matrix([[1, 0], [0, -1j]])


def t_operator() -> jnp.ndarray:
    return _matrix([[1, 0], [0, np.exp(1j * np.pi / 4)]])


def inv_t_operator() -> jnp.ndarray:
    return _matrix([[1, 0], [0, np.exp(-1j * np.pi / 4)]])


def sx_operator() -> jnp.ndarray:
    return 0.5 * _matrix([[1 + 1j, 1 - 1j], [1 - 1j, 1 + 1j]])


def inv_sx_operator() -> jnp.ndarray:
    return 0.5 * _matrix([[1 - 1j, 1 + 1j], [1 + 1j, 1 - 1j]])


def rx_operator(theta: float) -> jnp.ndarray:
    c, s = np.cos(theta / 2), np.sin(theta / 2)
    return _matrix([[c, -1j * s], [-1j * s, c]])


def ry_operator(theta: float) -> jnp.ndarray:
    c, s = np.cos(theta / 2), np.sin(theta / 2)
    return _matrix([[c, -s], [s, c]])


def rz_operator(theta: float) -> jnp.ndarray:
    return _matrix(
        [[np.exp(-1j * theta / 2), 0], [0, np.exp(1j * theta / 2)]]
    )


def rxy_operator(theta: float, phi: float) -> jnp.ndarray:
    c, s = np.cos(theta / 2), np.sin(theta / 2)
    return _matrix(
        [
            [c, -1j * np.exp(-1j * phi) * s],
            [-1j * np.exp(1j * phi) * s, c],
        ]
    )


def spherical_rotation_operator(
    theta: float, spherical_theta: float, spherical_phi: float
) -> jnp.ndarray:
    r"""
    Rotation by `theta` around the axis given in spherical coordinates

    .. math::
        U = \cos(\theta/2) I - i \sin(\theta/2) (n_x X + n_y Y + n_z Z)
    """
    nx = math.sin(spherical_theta) * math.cos(spherical_phi)
    ny = math.sin(spherical_theta) * math.sin(spherical_phi)
    nz = math.cos(spherical_theta)
    generator = nx * x_operator() + ny * y_operator() + nz * z_operator()
    return math.cos(theta / 2) * identity_operator() - 1j * math.sin(
        theta / 2
    ) * generator


def phase_shift_state0_operator(theta: float) -> jnp.ndarray:
    return _matrix([[np.exp(1j * theta), 0], [0, 1]])


def phase_shift_state1_operator(theta: float) -> jnp.ndarray:
    return _matrix([[1, 0], [0, np.exp(1j * theta)]])


def gpi_operator(theta: float) -> jnp.ndarray:
    return _matrix([[0, np.exp(-1j * theta)], [np.exp(1j * theta), 0]])


def gpi2_operator(theta: float) -> jnp.ndarray:
    return _matrix(
        [[1, -1j * np.exp(-1j * theta)], [-1j * np.exp(1j * theta), 1]]
    ) / np.sqrt(2)


def single_qubit_gate_operator(
    alpha_r: float, alpha_i: float, beta_r: float, beta_i: float, global_phase: float
) -> jnp.ndarray:
    return cmath.exp(1j * global_phase) * _matrix(
        [
            [alpha_r + 1j * alpha_i, -beta_r + 1j * beta_i],
            [beta_r + 1j * beta_i, alpha_r - 1j * alpha_i],
        ]
    )


def kron_reduce(operators: Sequence[jnp.ndarray]) -> jnp.ndarray:
    """
    Kronecker product over a sequence of matrices, a 1x1 identity
    for an empty sequence
    """
    return reduce(jnp.kron, operators, jnp.ones((1, 1), dtype=_DTYPE))


def controlled_operator(operator: jnp.ndarray, num_controls: int = 1) -> jnp.ndarray:
    """
    Applies `operator` when all leading control qubits are in |1>
    """
    dim = operator.shape[0]
    total = (2**num_controls) * dim
    return jnp.identity(total, dtype=_DTYPE).at[total - dim :, total - dim :].set(
        operator
    )


def swap_operator() -> jnp.ndarray:
    return _matrix([[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, 1]])


def iswap_operator() -> jnp.ndarray:
    return _matrix([[1, 0, 0, 0], [0, 0, 1j, 0], [0, 1j, 0, 0], [0, 0, 0, 1]])


def fswap_operator() -> jnp.ndarray:
    return _matrix([[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, -1]])


def sqrt_iswap_operator() -> jnp.ndarray:
    f = 1 / np.sqrt(2)
    return _matrix([[1, 0, 0, 0], [0, f, 1j * f, 0], [0, 1j * f, f, 0], [0, 0, 0, 1]])


def inv_sqrt_iswap_operator() -> jnp.ndarray:
    f = 1 / np.sqrt(2)
    return _matrix(
        [[1, 0, 0, 0], [0, f, -1j * f, 0], [0, -1j * f, f, 0], [0, 0, 0, 1]]
    )


def xy_operator(theta: float) -> jnp.ndarray:
    c, s = np.cos(theta / 2), np.sin(theta / 2)
    return _matrix([[1, 0, 0, 0], [0, c, 1j * s, 0], [0, 1j * s, c, 0], [0, 0, 0, 1]])


def molmer_sorensen_xx_operator() -> jnp.ndarray:
    return _matrix(
        [[1, 0, 0, -1j], [0, 1, -1j, 0], [0, -1j, 1, 0], [-1j, 0, 0, 1]]
    ) / np.sqrt(2)


def variable_msxx_operator(theta: float) -> jnp.ndarray:
    c, s = np.cos(theta / 2), -1j * np.sin(theta / 2)
    return _matrix([[c, 0, 0, s], [0, c, s, 0], [0, s, c, 0], [s, 0, 0, c]])


def givens_rotation_operator(theta: float, phi: float) -> jnp.ndarray:
    c, s, p = np.cos(theta), np.sin(theta), np.exp(1j * phi)
    return _matrix([[1, 0, 0, 0], [0, c * p, s, 0], [0, -s * p, c, 0], [0, 0, 0, p]])


def givens_rotation_little_endian_operator(theta: float, phi: float) -> jnp.ndarray:
    c, s, p = np.cos(theta), np.sin(theta), np.exp(1j * phi)
    return _matrix([[1, 0, 0, 0], [0, c, s, 0], [0, -s * p, c * p, 0], [0, 0, 0, p]])


def echo_cross_resonance_operator() -> jnp.ndarray:
    return _matrix(
        [[0, 1, 0, 1j], [1, 0, -1j, 0], [0, 1j, 0, 1], [-1j, 0, 1, 0]]
    ) / np.sqrt(2)


def phase_shifted_controlled_phase_operator(
    theta: float, phi: float, num_qubits: int = 2
) -> jnp.ndarray:
    """
    Controlled phase `theta` on the all-ones state, with an additional
    single-qubit phase `phi` picked up by every qubit in |1>
    """
    phases = [
        phi * bin(k).count("1") + (theta if k == 2**num_qubits - 1 else 0.0)
        for k in range(2**num_qubits)
    ]
    return jnp.diag(jnp.exp(1j * jnp.array(phases, dtype=jnp.float64))).astype(_DTYPE)


_PAULI_CONTEXT = {
    "i": lambda dims: identity_operator(),
    "x": lambda dims: x_operator(),
    "y": lambda dims: y_operator(),
    "z": lambda dims: z_operator(),
    "sp": lambda dims: sigma_plus_operator(),
    "sm": lambda dims: sigma_minus_operator(),
}


def hamiltonian_gate_operator(expr: tuple, dimensions: Sequence[int]) -> jnp.ndarray:
    """
    Returns exp(-i H) where H is given as an interpreter expression over
    the Pauli context (i, x, y, z, sp, sm) and the bosonic context
    (a, a_dag, i_mode) of the given subsystem dimensions
    """
    context = dict(_PAULI_CONTEXT)
    context.update(_BOSONIC_CONTEXT)
    return interpreter(("expm", ("s_mult", -1j, expr)), context, list(dimensions))


def spin_interaction_operator(x: float, y: float, z: float) -> jnp.ndarray:
    expr = (
        "add",
        ("s_mult", x, ("kron", "x", "x")),
        ("s_mult", y, ("kron", "y", "y")),
        ("s_mult", z, ("kron", "z", "z")),
    )
    return hamiltonian_gate_operator(expr, [2, 2])


def pm_interaction_operator(t: float) -> jnp.ndarray:
    expr = ("s_mult", t, ("add", ("kron", "sp", "sm"), ("kron", "sm", "sp")))
    return hamiltonian_gate_operator(expr, [2, 2])


def complex_pm_interaction_operator(t_real: float, t_imag: float) -> jnp.ndarray:
    t = t_real + 1j * t_imag
    expr = (
        "add",
        ("s_mult", t, ("kron", "sp", "sm")),
        ("s_mult", t.conjugate(), ("kron", "sm", "sp")),
    )
    return hamiltonian_gate_operator(expr, [2, 2])


def bogoliubov_operator(delta_real: float, delta_imag: float) -> jnp.ndarray:
    delta = delta_real + 1j * delta_imag
    expr = (
        "add",
        ("s_mult", delta, ("kron", "sp", "sp")),
        ("s_mult", delta.conjugate(), ("kron", "sm", "sm")),
    )
    return hamiltonian_gate_operator(expr, [2, 2])


def multi_qubit_ms_operator(num_qubits: int, theta: float) -> jnp.ndarray:
    xs = kron_reduce([x_operator()] * num_qubits)
    return math.cos(theta / 2) * identity_operator(num_qubits) - 1j * math.sin(
        theta / 2
    ) * xs


def multi_qubit_zz_operator(num_qubits: int, theta: float) -> jnp.ndarray:
    zs = kron_reduce([z_operator()] * num_qubits)
    return math.cos(theta / 2) * identity_operator(num_qubits) - 1j * math.sin(
        theta / 2
    ) * zs


def _bit_reversal_permutation(num_qubits: int) -> jnp.ndarray:
    dim = 2**num_qubits
    perm = np.zeros((dim, dim))
    for k in range(dim):
        reversed_k = int(format(k, f"0{num_qubits}b")[::-1], 2) if num_qubits else 0
        perm[reversed_k, k] = 1
    return jnp.array(perm, dtype=_DTYPE)


def qft_operator(num_qubits: int, swaps: bool, inverse: bool) -> jnp.ndarray:
    """
    Quantum Fourier transform on `num_qubits` qubits

    Without `swaps` the output register is left in bit reversed order,
    as produced by the textbook circuit without its final SWAP layer.
    """
    dim = 2**num_qubits
    j, k = np.meshgrid(np.arange(dim), np.arange(dim), indexing="ij")
    fourier = jnp.array(np.exp(2j * np.pi * j * k / dim) / np.sqrt(dim), dtype=_DTYPE)
    if inverse:
        fourier = jnp.conjugate(fourier)
    if swaps:
        return fourier
    permutation = _bit_reversal_permutation(num_qubits)
    if inverse:
        return fourier @ permutation
    return permutation @ fourier


def is_unitary(matrix: jnp.ndarray, atol: float = 1e-8) -> bool:
    identity = jnp.identity(matrix.shape[0], dtype=_DTYPE)
    return bool(jnp.allclose(matrix @ jnp.conjugate(matrix).T, identity, atol=atol))


def annihilation_operator(cutoff: int) -> jnp.ndarray:
    return jnp.diag(jnp.sqrt(jnp.arange(1, cutoff, dtype=jnp.float64)).astype(_DTYPE), 1)


def creation_operator(cutoff: int) -> jnp.ndarray:
    return jnp.conjugate(annihilation_operator(cutoff=cutoff)).T


_BOSONIC_CONTEXT = {
    "a": lambda dims: annihilation_operator(dims[-1]),
    "a_dag": lambda dims: creation_operator(dims[-1]),
    "i_mode": lambda dims: jnp.identity(dims[-1], dtype=_DTYPE),
}


def squeezing_operator(cutoff: int, zeta: complex) -> jnp.ndarray:
    create = creation_operator(cutoff=cutoff)
    destroy = annihilation_operator(cutoff=cutoff)
    operator = 0.5 * (
        jnp.conj(zeta) * (destroy @ destroy) - zeta * (create @ create)
    )
    return expm(operator)


def displacement_operator(cutoff: int, alpha: complex) -> jnp.ndarray:
    create = creation_operator(cutoff=cutoff)
    destroy = annihilation_operator(cutoff=cutoff)
    operator = alpha * create - jnp.conj(alpha) * destroy
    return expm(operator)


def phase_operator(cutoff: int, theta: float) -> jnp.ndarray:
    r"""
    Returns a phase shift operator, given the dimensions

    .. math::
      \hat{R}(\theta) = \sum_{n=0}^{\text{cutoff}-1} e^{i n \theta }|n\rangle \langle n|

    Parameters
    ----------
    cutoff: int
        Cutoff dimensions
    theta: float
        Phase shift for the operator

    Returns
    -------
    jnp.ndarray
        Constructed operator
    """
    return jnp.diag(jnp.exp(1j * theta * jnp.arange(cutoff, dtype=jnp.float64))).astype(
        _DTYPE
    )


def beam_splitter_operator(cutoff: int, theta: float, phi: float) -> jnp.ndarray:
    r"""
    Beam splitter acting on two modes truncated at `cutoff`

    .. math::
        U = \exp\left(\theta (e^{i\phi} a b^\dagger - e^{-i\phi} a^\dagger b)\right)
    """
    identity = jnp.identity(cutoff, dtype=_DTYPE)
    a = jnp.kron(annihilation_operator(cutoff), identity)
    b = jnp.kron(identity, annihilation_operator(cutoff))
    a_dag = jnp.conjugate(a).T
    b_dag = jnp.conjugate(b).T
    generator = theta * (
        cmath.exp(1j * phi) * (a @ b_dag) - cmath.exp(-1j * phi) * (a_dag @ b)
    )
    return expm(generator)


def quantum_rabi_operator(cutoff: int, theta: float) -> jnp.ndarray:
    expr = ("s_mult", theta, ("kron", "x", ("add", "a", "a_dag")))
    return hamiltonian_gate_operator(expr, [2, cutoff])


def longitudinal_coupling_operator(cutoff: int, theta: float) -> jnp.ndarray:
    expr = ("s_mult", theta, ("kron", "z", ("add", "a", "a_dag")))
    return hamiltonian_gate_operator(expr, [2, cutoff])


def jaynes_cummings_operator(cutoff: int, theta: float) -> jnp.ndarray:
    expr = (
        "s_mult",
        theta,
        ("add", ("kron", "sm", "a_dag"), ("kron", "sp", "a")),
    )
    return hamiltonian_gate_operator(expr, [2, cutoff])
