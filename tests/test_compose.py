import pytest
import sympy as sp

from crn_equations import (
    AmbiguousReferenceError,
    Parameter,
    ReactionNetwork,
    UnresolvedSymbolError,
    birth_death_network,
    compose,
    drift,
    fix_parameters,
    flatten,
    linear_cascade_network,
    resolve_noise_scaling,
    set_default_noise_scaling,
)


def _names(entities):
    return [e.qualified_name for e in entities]


def _decay(name):
    return ReactionNetwork.from_string("X ->[d] 0", name=name)


def test_children_are_namespaced():
    parent = compose(ReactionNetwork(name="parent"), [_decay("A"), _decay("B")])

    assert _names(parent.species) == ["A.X", "B.X"]
    assert _names(parent.parameters) == ["A.d", "B.d"]
    assert parent.species_symbols == (sp.Symbol("A.X"), sp.Symbol("B.X"))
    assert [c.name for c in parent.systems] == ["A", "B"]
    # Rates follow the renamed symbols.
    assert parent.reactions[1].rate == sp.Symbol("B.d")


def test_bare_name_in_two_children_is_ambiguous():
    parent = compose(ReactionNetwork(name="parent"), [_decay("A"), _decay("B")])
    with pytest.raises(AmbiguousReferenceError):
        parent.lookup("X")
    with pytest.raises(AmbiguousReferenceError):
        parent.add_reaction({"X": 1}, {}, "k")

    assert parent.lookup("A.X") is parent.species[0]
    assert parent.lookup("B.X") is parent.species[1]
    with pytest.raises(UnresolvedSymbolError):
        parent.lookup("C.X")


def test_parent_entity_wins_over_children():
    top = ReactionNetwork(name="top")
    X = top.add_species("X")
    parent = compose(top, [_decay("A"), _decay("B")])
    assert parent.lookup("X") is X
    assert _names(parent.species) == ["X", "A.X", "B.X"]


def test_name_found_in_a_single_child_resolves():
    child = ReactionNetwork.from_string("Y ->[k] 0", name="A")
    parent = compose(ReactionNetwork(name="parent"), [child, _decay("B")])
    assert parent.lookup("Y").qualified_name == "A.Y"
    assert parent.lookup("k").qualified_name == "A.k"


def test_parent_reactions_can_use_child_species():
    parent = compose(ReactionNetwork(name="parent"), [_decay("A"), _decay("B")])
    AX, BX = parent.lookup("A.X"), parent.lookup("B.X")
    rx = parent.add_reaction({"A.X": 1}, {BX: 1}, "kt")

    assert rx.substrates == {AX: 1}
    assert _names(parent.species) == ["A.X", "B.X"]
    assert _names(parent.parameters) == ["kt", "A.d", "B.d"]
    F = drift(parent)
    kt, Ad = sp.Symbol("kt"), sp.Symbol("A.d")
    assert sp.simplify(F[0, 0] - (-kt * AX.symbol - Ad * AX.symbol)) == 0


def test_shared_parameter_keeps_its_symbol():
    k = Parameter("k")
    children = []
    for name in ("A", "B"):
        child = ReactionNetwork(name=name)
        child.add_parameter(k)
        child.add_reaction({"X": 1}, {}, k.symbol)
        children.append(child)
    parent = compose(ReactionNetwork(name="parent"), children)

    assert _names(parent.parameters) == ["k"]
    assert _names(parent.species) == ["A.X", "B.X"]
    assert parent.lookup("k") is k
    assert all(rx.rate == k.symbol for rx in parent.reactions)


def test_nested_composition_prefixes_every_level():
    leaf = _decay("leaf")
    mid = compose(ReactionNetwork(name="mid"), [leaf])
    top = compose(ReactionNetwork(name="top"), [mid])

    assert _names(top.species) == ["mid.leaf.X"]
    assert top.lookup("mid.leaf.d").symbol == sp.Symbol("mid.leaf.d")
    assert top.lookup("X").qualified_name == "mid.leaf.X"


def test_duplicate_sub_system_names_are_rejected():
    with pytest.raises(ValueError):
        compose(ReactionNetwork(name="parent"), [_decay("A"), _decay("A")])


def test_composition_leaves_inputs_untouched():
    A = _decay("A")
    parent_in = ReactionNetwork(name="parent")
    parent = compose(parent_in, [A], name="renamed")

    assert parent.name == "renamed"
    assert _names(A.species) == ["X"]
    assert parent_in.systems == ()
    assert not parent.is_complete()


def test_composed_drift_is_block_structured():
    parent = compose(
        ReactionNetwork(name="parent"),
        [birth_death_network("A"), birth_death_network("B")],
    )
    F = drift(parent)
    Ap, Ad, AX = sp.symbols("A.p A.d A.X")
    Bp, Bd, BX = sp.symbols("B.p B.d B.X")
    assert sp.simplify(F[0, 0] - (Ap - Ad * AX)) == 0
    assert sp.simplify(F[1, 0] - (Bp - Bd * BX)) == 0


def test_flatten_keeps_names_and_noise():
    child = birth_death_network("A", default_noise_scaling=0.3)
    parent = compose(ReactionNetwork(name="parent"), [child])
    flat = flatten(parent)

    assert flat.systems == ()
    assert _names(flat.own_species) == ["A.X"]
    assert list(resolve_noise_scaling(flat).values()) == list(
        resolve_noise_scaling(parent).values()
    )
    assert sp.simplify(drift(flat)[0, 0] - drift(parent)[0, 0]) == 0


def test_fix_parameters_substitutes_and_drops():
    net = fix_parameters(linear_cascade_network(), {"p": 2})
    assert _names(net.parameters) == ["k1", "k2", "k3", "d"]

    X1 = net.lookup("X1").symbol
    k1 = net.lookup("k1").symbol
    assert sp.simplify(drift(net)[0, 0] - (4 - k1 * X1)) == 0
    with pytest.raises(ValueError):
        fix_parameters(linear_cascade_network(), {"X1": 1})


def test_shared_entity_clashing_with_parent_name_is_rejected():
    top = ReactionNetwork(name="top")
    top.add_reaction({"Y": 1}, {}, "d")
    shared_d = Parameter("d")
    children = []
    for name in ("A", "B"):
        child = ReactionNetwork(name=name)
        child.add_parameter(shared_d)
        child.add_reaction({"X": 1}, {}, shared_d.symbol)
        children.append(child)

    with pytest.raises(AmbiguousReferenceError):
        compose(top, children)


def test_qualified_names_in_rate_strings():
    parent = compose(ReactionNetwork(name="parent"), [_decay("A"), _decay("B")])
    rx = parent.add_reaction({"A.X": 1}, {"B.X": 1}, "A.d")

    assert rx.rate == sp.Symbol("A.d")
    assert _names(parent.parameters) == ["A.d", "B.d"]

    rx = parent.add_reaction({"B.X": 1}, {}, "2*A.d + B.d^2", only_use_rate=True)
    Ad, Bd = sp.symbols("A.d B.d")
    assert rx.rate == 2 * Ad + Bd**2
    assert parent.evaluate("A.d * B.X", {"B.X": 3.0}, {"A.d": 2.0, "B.d": 1.0}) == pytest.approx(6.0)


def test_unknown_qualified_name_in_rate_is_an_error():
    parent = compose(ReactionNetwork(name="parent"), [_decay("A")])
    with pytest.raises(UnresolvedSymbolError):
        parent.add_reaction({"A.X": 1}, {}, "C.k")
    assert _names(parent.parameters) == ["A.d"]
    assert len(parent.reactions) == 1


def test_qualified_default_noise_scaling():
    child = ReactionNetwork(name="A")
    child.add_parameter("eta")
    child.add_reaction({"X": 1}, {}, "d")
    parent = set_default_noise_scaling(compose(ReactionNetwork(name="parent"), [child]), "A.eta")
    assert list(resolve_noise_scaling(parent).values()) == [sp.Symbol("A.eta")]
