"""Tests for the z3 and pysat solver sessions."""

import pytest

from sessions import PysatSession, Status, Z3Session


def test_ordering_and_distinct(session):
    a, b, c = (session.int_var(name, 1, 3) for name in "abc")
    session.add(session.and_([
        session.distinct([a, b, c]),
        session.lt(a, b),
        session.gt(c, b),
        session.le(session.const(1), a),
        session.le(c, session.const(3)),
    ]))
    assert session.check() is Status.SAT
    assert [session.value(x) for x in (a, b, c)] == [1, 2, 3]


def test_not_and_eq(session):
    a = session.int_var("a", 1, 2)
    session.add(session.le(a, session.const(2)))
    session.add(session.le(session.const(1), a))
    session.add(session.not_(session.eq(a, session.const(1))))
    assert session.check() is Status.SAT
    assert session.value(a) == 2


def test_contradiction_is_unsat(session):
    a = session.int_var("a", 1, 3)
    b = session.int_var("b", 1, 3)
    session.add(session.and_([session.lt(a, b), session.lt(b, a)]))
    assert session.check() is Status.UNSAT


def test_empty_and_or(session):
    session.add(session.and_([]))
    assert session.check() is Status.SAT
    session.add(session.or_([]))
    assert session.check() is Status.UNSAT


def test_distinct_of_one_term_is_true(session):
    a = session.int_var("a", 1, 1)
    session.add(session.distinct([a]))
    session.add(session.eq(a, session.const(1)))
    assert session.check() is Status.SAT


def test_value_needs_a_model(session):
    a = session.int_var("a", 1, 2)
    with pytest.raises(RuntimeError):
        session.value(a)
    session.add(session.lt(a, session.const(1)))
    session.add(session.le(session.const(1), a))
    assert session.check() is Status.UNSAT
    with pytest.raises(RuntimeError):
        session.value(a)


def test_closed_session_refuses_work(make_session):
    with make_session() as s:
        a = s.int_var("a", 1, 2)
        b = s.int_var("b", 1, 2)
        f = s.lt(a, b)
    assert s.closed
    formula_builders = [
        lambda: s.lt(a, b),
        lambda: s.gt(a, b),
        lambda: s.le(a, b),
        lambda: s.eq(a, b),
        lambda: s.and_([f]),
        lambda: s.or_([f]),
        lambda: s.not_(f),
        lambda: s.distinct([a, b]),
    ]
    for build in formula_builders:
        with pytest.raises(RuntimeError):
            build()
    with pytest.raises(RuntimeError):
        s.int_var("b", 1, 2)
    with pytest.raises(RuntimeError):
        s.add(s.true())
    with pytest.raises(RuntimeError):
        s.check()
    with pytest.raises(RuntimeError):
        s.value(a)
    with pytest.raises(RuntimeError):
        with s:
            pass


def test_close_is_idempotent():
    s = Z3Session()
    s.close()
    s.close()
    assert s.closed


@pytest.mark.parametrize("encoding", ["pairwise", "seq", "cardnet"])
def test_pysat_encodings(encoding):
    with PysatSession(encoding=encoding) as s:
        xs = [s.int_var(f"x{i}", 1, 4) for i in range(4)]
        s.add(s.distinct(xs))
        s.add(s.and_([s.gt(xs[i], xs[i + 1]) for i in range(3)]))
        assert s.check() is Status.SAT
        assert [s.value(x) for x in xs] == [4, 3, 2, 1]


def test_pysat_rejects_unknown_encoding():
    with pytest.raises(ValueError, match="encoding"):
        PysatSession(encoding="ladder")


def test_pysat_rejects_empty_domain():
    with PysatSession() as s:
        with pytest.raises(ValueError):
            s.int_var("a", 3, 1)


def test_pysat_comparisons_are_shared():
    with PysatSession() as s:
        a = s.int_var("a", 1, 3)
        b = s.int_var("b", 1, 3)
        assert s.lt(a, b) == s.lt(a, b)
        assert s.lt(a, b) != s.gt(a, b)


def test_pysat_conflict_budget_still_solves_easy_instances():
    with PysatSession(conflict_budget=1000) as s:
        a = s.int_var("a", 1, 2)
        s.add(s.eq(a, s.const(2)))
        assert s.check() is Status.SAT
        assert s.value(a) == 2


def test_z3_timeout_option():
    with Z3Session(timeout=10000) as s:
        a = s.int_var("a", 1, 2)
        s.add(s.eq(a, s.const(2)))
        assert s.check() is Status.SAT
        assert s.value(a) == 2
