import numpy as np
import pytest
import sympy as sp

from crn_equations import (
    GenerationOptions,
    ReactionNetwork,
    UnresolvedSymbolError,
    binding_chain_network,
    dimerization_network,
    drift,
    hill_network,
    jacobian,
    linear_cascade_network,
    ode_system,
    oderatelaw,
    sde_system,
)


def real_f_cascade(u, p):
    X1, X2, X3 = u
    p_, k1, k2, k3, d = p
    return [
        2 * p_ - k1 * X1,
        k1 * X1 - k2 * X2 - k3 * X2,
        k2 * X2 + k3 * X2 - d * X3,
    ]


def real_f_hill(u, p):
    (X1,) = u
    v, K, n, d = p
    return [v / 10 + v * X1**n / (X1**n + K**n) - d * X1]


def real_f_binding(u, p):
    X1, X2, X3, X4, X5, X6, X7 = u
    k1, k2, k3, k4, k5, k6 = p
    return [
        -k1 * X1 * X2 + k2 * X3,
        -k1 * X1 * X2 + k2 * X3,
        k1 * X1 * X2 - k2 * X3 - k3 * X3 * X4 + k4 * X5,
        -k3 * X3 * X4 + k4 * X5,
        k3 * X3 * X4 - k4 * X5 - k5 * X5 * X6 + k6 * X7,
        -k5 * X5 * X6 + k6 * X7,
        k5 * X5 * X6 - k6 * X7,
    ]


@pytest.mark.parametrize(
    "factory, reference",
    [
        (linear_cascade_network, real_f_cascade),
        (hill_network, real_f_hill),
        (binding_chain_network, real_f_binding),
    ],
)
def test_drift_matches_hand_derived_reference(factory, reference, random_point):
    ode = ode_system(factory().finalize())
    for _ in range(5):
        u, p = random_point(ode.network)
        np.testing.assert_allclose(ode.f(u, p, 0.0), reference(u, p), rtol=1e-10, atol=1e-10)


def test_unsimplified_drift_is_numerically_equivalent(random_point):
    net = hill_network().finalize()
    simplified = ode_system(net)
    raw = ode_system(net, GenerationOptions(simplify=False))
    u, p = random_point(net)
    np.testing.assert_allclose(simplified.f(u, p), raw.f(u, p), rtol=1e-10, atol=1e-10)


def test_mass_action_includes_combinatoric_factor():
    net = dimerization_network()
    X, X2 = net.species_symbols
    kb, ku = net.parameter_symbols

    assert oderatelaw(net.reactions[0]) == kb * X**2 / 2
    F = drift(net)
    assert sp.simplify(F[0, 0] - (-kb * X**2 + 2 * ku * X2)) == 0
    assert sp.simplify(F[1, 0] - (kb * X**2 / 2 - ku * X2)) == 0


def test_combinatoric_ratelaws_can_be_disabled():
    net = ReactionNetwork(name="rn", combinatoric_ratelaws=False)
    net.add_reaction({"X": 3}, {"Y": 1}, "k")
    X, Y = net.species_symbols
    (k,) = net.parameter_symbols
    assert sp.simplify(drift(net)[1, 0] - k * X**3) == 0


def test_only_use_rate_skips_mass_action():
    net = ReactionNetwork(name="rn")
    net.add_species("X")
    net.add_reaction({"X": 1}, {}, "v*X/(K + X)", only_use_rate=True)
    X = net.species_symbols[0]
    v, K = sp.symbols("v K")
    assert sp.simplify(drift(net)[0, 0] + v * X / (K + X)) == 0


def test_drift_is_invariant_to_declaration_order():
    reactions = [
        ({"A": 1}, {"B": 1}, "k1"),
        ({"B": 1}, {"C": 1}, "k2"),
        ({"C": 2}, {"A": 1}, "k3"),
    ]

    def build(order):
        rn = ReactionNetwork(name="rn")
        for subs, prods, rate in order:
            rn.add_reaction(subs, prods, rate)
        return rn.finalize()

    forward = build(reactions)
    backward = build(list(reversed(reactions)))
    assert [s.name for s in forward.species] == ["A", "B", "C"]
    assert [s.name for s in backward.species] == ["C", "A", "B"]

    u = {"A": 1.3, "B": 0.7, "C": 2.1}
    p = {"k1": 0.4, "k2": 1.9, "k3": 0.25}
    f_fwd = ode_system(forward).f(forward.state_vector(u), forward.parameter_vector(p))
    f_bwd = ode_system(backward).f(backward.state_vector(u), backward.parameter_vector(p))
    for name in u:
        assert f_fwd[forward.species_index(name)] == pytest.approx(
            f_bwd[backward.species_index(name)], rel=1e-12
        )

    # Diffusion: rows follow the species permutation, columns the reversed reactions.
    g_fwd = sde_system(forward).g(forward.state_vector(u), forward.parameter_vector(p))
    g_bwd = sde_system(backward).g(backward.state_vector(u), backward.parameter_vector(p))
    rows = [backward.species_index(s.name) for s in forward.species]
    np.testing.assert_allclose(g_fwd, g_bwd[rows, ::-1], rtol=1e-12)


def test_jacobian_of_linear_cascade():
    net = linear_cascade_network()
    p, k1, k2, k3, d = net.parameter_symbols
    expected = sp.Matrix([[-k1, 0, 0], [k1, -k2 - k3, 0], [0, k2 + k3, -d]])
    assert sp.simplify(jacobian(net) - expected) == sp.zeros(3, 3)

    ode = ode_system(net.finalize())
    J = ode.jac([1.0, 2.0, 3.0], [1.0, 0.5, 0.25, 0.125, 2.0])
    np.testing.assert_allclose(J, [[-0.5, 0, 0], [0.5, -0.375, 0], [0, 0.375, -2.0]])


def test_time_dependent_rate():
    net = ReactionNetwork(name="rn")
    net.add_reaction({}, {"X": 1}, "a*t")
    ode = ode_system(net.finalize())
    assert ode.f([0.0], [2.0], 3.0)[0] == pytest.approx(6.0)


def test_solve_decay_with_scipy():
    net = ReactionNetwork.from_string("X ->[d] 0", name="decay").finalize()
    ode = ode_system(net)
    sol = ode.solve({"X": 10.0}, (0.0, 2.0), {"d": 0.5}, rtol=1e-10, atol=1e-12)
    assert sol.success
    assert sol.y[0, -1] == pytest.approx(10.0 * np.exp(-1.0), rel=1e-7)

    stiff = ode.solve([10.0], (0.0, 2.0), [0.5], method="BDF", rtol=1e-10, atol=1e-12)
    assert stiff.y[0, -1] == pytest.approx(10.0 * np.exp(-1.0), rel=1e-6)


def test_to_latex_contains_every_species():
    latex = linear_cascade_network().to_latex()
    assert latex.startswith("\\begin{align}")
    for name in ("X_{1}", "X_{2}", "X_{3}"):
        assert name in latex


def test_undefined_rate_function_is_rejected_when_compiling():
    net = ReactionNetwork(name="rn")
    net.add_species("X")
    net.add_reaction({}, {"X": 1}, "myf(X)", only_use_rate=True)
    net.finalize()
    with pytest.raises(UnresolvedSymbolError):
        ode_system(net)
    with pytest.raises(UnresolvedSymbolError):
        sde_system(net)
