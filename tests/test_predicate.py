from hrsip.plan.predicate import And, Eq, Or, all_of, any_of


def test_eq_renders_quoted_value_and_evaluates():
    p = Eq("substrate", "13C-Glu")
    assert p.render() == "substrate=='13C-Glu'"
    assert p.evaluate({"substrate": "13C-Glu"})
    assert not p.evaluate({"substrate": "12C-Con"})
    assert not p.evaluate({})


def test_and_of_eqs_renders_label_text():
    p = all_of(Eq("substrate", "13C-Glu"), Eq("day", "3"))
    assert isinstance(p, And)
    assert p.render() == "substrate=='13C-Glu' & day=='3'"
    assert p.evaluate({"substrate": "13C-Glu", "day": "3"})
    assert not p.evaluate({"substrate": "13C-Glu", "day": "14"})


def test_or_inside_and_is_parenthesized():
    p = all_of(any_of(Eq("substrate", "12C-Con"), Eq("substrate", "13C-Glu")), Eq("day", "3"))
    assert p.render() == "(substrate=='12C-Con' | substrate=='13C-Glu') & day=='3'"
    assert p.evaluate({"substrate": "12C-Con", "day": "3"})
    assert not p.evaluate({"substrate": "13C-Cel", "day": "3"})


def test_single_term_is_not_wrapped():
    assert all_of(Eq("a", "1")) == Eq("a", "1")
    assert any_of(Eq("a", "1")) == Eq("a", "1")


def test_values_with_quotes_do_not_break_structure():
    p = Eq("substrate", "it's")
    assert p.evaluate({"substrate": "it's"})
    assert "it's" in p.render()


def test_axes_are_collected_in_order():
    p = And((Or((Eq("s", "a"), Eq("s", "b"))), Eq("day", "3")))
    assert p.axes() == ("s", "day")
