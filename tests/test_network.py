import pytest
import sympy as sp

from crn_equations import (
    AlreadyCompleteError,
    InvalidStoichiometryError,
    Parameter,
    ReactionNetwork,
    Species,
    UnresolvedSymbolError,
    michaelis_menten_network,
)


def _names(entities):
    return [e.qualified_name for e in entities]


def test_implicit_registration_follows_first_appearance():
    rn = ReactionNetwork(name="rn")
    rn.add_reaction({"B": 1}, {"A": 1}, "k2*B + k1")
    rn.add_reaction({"A": 2}, {"C": 1}, "kc")

    assert _names(rn.species) == ["B", "A", "C"]
    # Within one rate expression symbols are registered by name.
    assert _names(rn.parameters) == ["k1", "k2", "kc"]


def test_rebuilding_gives_identical_ordering():
    def build():
        rn = ReactionNetwork(name="rn")
        rn.add_reaction({"X": 1, "Y": 1}, {"Z": 1}, "kf")
        rn.add_reaction({"Z": 1}, {"X": 1, "Y": 1}, "kr")
        rn.add_reaction({}, {"W": 1}, "p")
        return rn

    a, b = build(), build()
    assert _names(a.species) == _names(b.species) == ["X", "Y", "Z", "W"]
    assert _names(a.parameters) == _names(b.parameters) == ["kf", "kr", "p"]
    assert a.species_symbols == b.species_symbols


def test_explicit_declarations_come_first():
    rn = ReactionNetwork(name="rn")
    Y = rn.add_species("Y", default=5, description="reporter")
    k = rn.add_parameter("k", default=0.3)
    rn.add_reaction({"X": 1}, {Y: 1}, k.symbol)

    assert _names(rn.species) == ["Y", "X"]
    assert rn.species[0].description == "reporter"
    assert rn.parameters[0].default == sp.Float(0.3)


@pytest.mark.parametrize("coefficient", [0, -1, 1.5, "a"])
def test_invalid_stoichiometry_is_rejected(coefficient):
    rn = ReactionNetwork(name="rn")
    with pytest.raises(InvalidStoichiometryError):
        rn.add_reaction({"X": coefficient}, {"Y": 1}, "k")


def test_failed_reaction_registers_nothing():
    rn = ReactionNetwork(name="rn")
    rn.add_reaction({"A": 1}, {}, "d")
    with pytest.raises(InvalidStoichiometryError):
        rn.add_reaction({"B": 1}, {"C": -2}, "k")
    assert _names(rn.species) == ["A"]
    assert _names(rn.parameters) == ["d"]
    assert len(rn.reactions) == 1


def test_fractional_stoichiometry_needs_opt_in():
    rn = ReactionNetwork(name="rn")
    rx = rn.add_reaction({"X": 1}, {"Y": 1.5}, "k", integer_stoichiometry=False)
    assert rx.products[rn.lookup("Y")] == sp.Rational(3, 2)


def test_empty_reaction_is_rejected():
    rn = ReactionNetwork(name="rn")
    with pytest.raises(InvalidStoichiometryError):
        rn.add_reaction({}, {}, "k")


def test_species_name_used_as_parameter_is_an_error():
    rn = ReactionNetwork(name="rn")
    rn.add_parameter("k")
    with pytest.raises(ValueError):
        rn.add_reaction({"k": 1}, {}, "d")


def test_duplicate_declaration_is_an_error():
    rn = ReactionNetwork(name="rn")
    rn.add_species("X")
    with pytest.raises(ValueError):
        rn.add_parameter("X")


def test_strict_network_requires_declarations():
    rn = ReactionNetwork(name="rn", strict=True)
    X = rn.add_species("X")
    rn.add_parameter("d")
    rn.add_reaction({X: 1}, {}, "d")
    with pytest.raises(UnresolvedSymbolError):
        rn.add_reaction({"Y": 1}, {}, "d")
    with pytest.raises(UnresolvedSymbolError):
        rn.add_reaction({X: 1}, {}, "k")


def test_finalize_is_idempotent_and_blocks_mutation():
    rn = ReactionNetwork(name="rn")
    rn.add_reaction({"X": 1}, {}, "d")
    assert not rn.is_complete()

    assert rn.finalize() is rn
    assert rn.is_complete()
    assert rn.finalize() is rn
    assert rn.finalize("rn") is rn

    with pytest.raises(AlreadyCompleteError):
        rn.finalize("other")
    with pytest.raises(AlreadyCompleteError):
        rn.add_reaction({"X": 1}, {"Y": 1}, "k")
    with pytest.raises(AlreadyCompleteError):
        rn.add_species("Z")


def test_entities_compare_by_identity():
    a, b = Species("X"), Species("X")
    assert a != b
    assert a.symbol == b.symbol
    assert a.qualified_name == "X"
    with pytest.raises(ValueError):
        Parameter("a.b")


def test_evaluate_works_on_incomplete_network():
    rn = ReactionNetwork(name="rn")
    rn.add_parameter("k1", default=3.0)
    rn.add_reaction({"X1": 1}, {}, "k1")

    assert rn.evaluate("k1*X1", {"X1": 2.0}) == pytest.approx(6.0)
    assert rn.evaluate("k1*X1 + t", [2.0], [4.0], t=1.0) == pytest.approx(9.0)
    with pytest.raises(UnresolvedSymbolError):
        rn.evaluate("k1*X1")


def test_state_and_parameter_vectors_use_defaults():
    rn = ReactionNetwork(name="rn")
    rn.add_species("X", default=10)
    rn.add_species("Y")
    rn.add_reaction({"X": 1}, {"Y": 1}, "k")

    assert rn.state_vector({"Y": 2}) == [10.0, 2.0]
    assert rn.parameter_vector({"k": 0.5}) == [0.5]
    with pytest.raises(UnresolvedSymbolError):
        rn.state_vector({})
    with pytest.raises(ValueError):
        rn.parameter_vector([1.0, 2.0])


def test_stoichiometry_matrices_and_conservation_laws():
    net = michaelis_menten_network()
    N = net.net_stoichiometry_matrix()
    assert N == net.product_matrix() - net.substrate_matrix()
    assert N.shape == (4, 3)
    # Species order [S, E, C, P]; reactions S+E->C, C->S+E, C->E+P.
    assert N[:, 2] == sp.Matrix([0, 1, -1, 1])

    laws = net.conservation_laws()
    assert len(laws) == 2
    for mu in laws:
        assert mu * N == sp.zeros(1, N.cols)


def test_catalyst_has_zero_net_change():
    rn = ReactionNetwork(name="rn")
    rx = rn.add_reaction({"E": 1, "S": 1}, {"E": 1, "P": 1}, "k")
    E = rn.lookup("E")
    assert rx.net_change(E) == 0
    assert rn.net_stoichiometry_matrix()[:, 0] == sp.Matrix([0, -1, 1])


def test_summary_mentions_entities():
    text = michaelis_menten_network().summary()
    assert "S, E, C, P" in text
    assert "k1, km1, k2" in text


def test_conservation_laws_are_primitive_integer_rows():
    rn = ReactionNetwork(name="rn")
    rn.add_reaction({"A": 2}, {"B": 3}, "k")
    assert rn.conservation_laws() == [sp.Matrix([[3, 2]])]
    (law,) = rn.conservation_laws(integer_basis=False)
    assert law * rn.net_stoichiometry_matrix() == sp.zeros(1, 1)

    for mu in michaelis_menten_network().conservation_laws():
        entries = list(mu)
        assert all(v.is_integer for v in entries)
        assert sp.igcd(0, *entries) == 1
        assert next(v for v in entries if v != 0) > 0
