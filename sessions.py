#!/usr/bin/env python3
import itertools
import logging
import operator
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import z3
from pysat.card import CardEnc, EncType
from pysat.solvers import Solver

log = logging.getLogger(__name__)


class Status(Enum):
    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"


class SolverSession:
    """
    A constraint engine owning every term and formula created through it.

    Sessions are used as context managers; leaving the block releases the
    engine state, after which the session refuses further work. Nothing is
    shared between sessions, so one session serves exactly one puzzle.
    """

    def __init__(self) -> None:
        self._closed = False

    def __enter__(self) -> "SolverSession":
        self._check_open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._release()
            log.debug("%s closed", type(self).__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} is closed")

    def _release(self) -> None:
        pass

    # Terms and formulas. Empty AND is true, empty OR is false.
    def int_var(self, name: str, lo: int, hi: int): raise NotImplementedError
    def const(self, value: int): raise NotImplementedError
    def true(self): raise NotImplementedError
    def lt(self, a, b): raise NotImplementedError
    def gt(self, a, b): raise NotImplementedError
    def le(self, a, b): raise NotImplementedError
    def eq(self, a, b): raise NotImplementedError
    def and_(self, formulas: Iterable): raise NotImplementedError
    def or_(self, formulas: Iterable): raise NotImplementedError
    def not_(self, formula): raise NotImplementedError
    def distinct(self, terms: Sequence): raise NotImplementedError

    # Solving
    def add(self, formula) -> None: raise NotImplementedError
    def check(self) -> Status: raise NotImplementedError
    def value(self, term) -> int: raise NotImplementedError


# ------------------------
# Z3 (SMT over integers)
# ------------------------

class Z3Session(SolverSession):
    """
    Integer terms are z3 Int constants in a context private to the session.
    `timeout` is in milliseconds; running out makes check() return UNKNOWN.
    """

    def __init__(self, *, timeout: Optional[int] = None) -> None:
        super().__init__()
        self._ctx = z3.Context()
        self._solver = z3.Solver(ctx=self._ctx)
        if timeout is not None:
            self._solver.set("timeout", timeout)
        self._model: Optional[z3.ModelRef] = None

    def _release(self) -> None:
        self._model = None
        self._solver = None
        self._ctx = None

    def int_var(self, name: str, lo: int, hi: int) -> z3.ArithRef:
        # bounds are asserted by the caller; z3 integers are unbounded
        self._check_open()
        return z3.Int(name, ctx=self._ctx)

    def const(self, value: int) -> z3.ArithRef:
        self._check_open()
        return z3.IntVal(value, ctx=self._ctx)

    def true(self) -> z3.BoolRef:
        self._check_open()
        return z3.BoolVal(True, ctx=self._ctx)

    def _compare(self, test: Callable, a, b):
        self._check_open()
        return test(a, b)

    def lt(self, a, b): return self._compare(operator.lt, a, b)
    def gt(self, a, b): return self._compare(operator.gt, a, b)
    def le(self, a, b): return self._compare(operator.le, a, b)
    def eq(self, a, b): return self._compare(operator.eq, a, b)

    def and_(self, formulas):
        self._check_open()
        formulas = list(formulas)
        if not formulas:
            return self.true()
        return z3.And(formulas)

    def or_(self, formulas):
        self._check_open()
        formulas = list(formulas)
        if not formulas:
            return z3.BoolVal(False, ctx=self._ctx)
        return z3.Or(formulas)

    def not_(self, formula):
        self._check_open()
        return z3.Not(formula)

    def distinct(self, terms):
        self._check_open()
        terms = list(terms)
        if len(terms) < 2:
            return self.true()
        return z3.Distinct(*terms)

    def add(self, formula) -> None:
        self._check_open()
        self._solver.add(formula)

    def check(self) -> Status:
        self._check_open()
        self._model = None
        r = self._solver.check()
        if r == z3.sat:
            self._model = self._solver.model()
            return Status.SAT
        if r == z3.unsat:
            return Status.UNSAT
        log.debug("z3 gave up: %s", self._solver.reason_unknown())
        return Status.UNKNOWN

    def value(self, term) -> int:
        self._check_open()
        if self._model is None:
            raise RuntimeError("No model available; check() did not return SAT")
        return self._model.eval(term, model_completion=True).as_long()


# ------------------------
# PySAT (CNF)
# ------------------------

_ENC_MAP = {
    "pairwise": EncType.pairwise,     # O(k^2) AMO, no aux vars
    "seq": EncType.seqcounter,        # sequential/ladder AMO, linear + aux vars
    "cardnet": EncType.cardnetwrk,    # sorting/cardinality networks, strong + aux vars
}

_COMPARISONS: Dict[str, Callable[[int, int], bool]] = {
    "lt": operator.lt,
    "gt": operator.gt,
    "le": operator.le,
    "eq": operator.eq,
}


class _IntVar:
    """One-hot integer: lits[v] is true iff the variable takes value v."""
    __slots__ = ("name", "lits")

    def __init__(self, name: str, lits: Dict[int, int]) -> None:
        self.name = name
        self.lits = lits

    def __repr__(self) -> str:
        return f"_IntVar({self.name!r}, {min(self.lits)}..{max(self.lits)})"


Term = Union[_IntVar, int]


class PysatSession(SolverSession):
    """
    Finite-domain encoding into CNF. Every integer variable gets one literal per
    value in lo..hi with an exactly-one constraint; comparisons, AND and OR
    become Tseitin gates (cached, so repeated comparisons share one literal).
    A formula is a single literal.
    """

    def __init__(
        self,
        *,
        solver_name: str = "g3",
        encoding: str = "pairwise",
        conflict_budget: Optional[int] = None,
    ) -> None:
        super().__init__()
        if encoding not in _ENC_MAP:
            raise ValueError(f"Unknown encoding: {encoding!r} (expected one of {sorted(_ENC_MAP)})")
        self._solver_name = solver_name
        self._enc = _ENC_MAP[encoding]
        self._conflict_budget = conflict_budget
        self._clauses: List[List[int]] = []
        self._top = 0
        self._vars: List[_IntVar] = []
        self._gates: Dict[Tuple[Any, ...], int] = {}
        self._model: Optional[Set[int]] = None
        self._true = self._new_var()
        self._clauses.append([self._true])

    def _release(self) -> None:
        self._clauses = []
        self._vars = []
        self._gates = {}
        self._model = None

    @property
    def num_clauses(self) -> int:
        return len(self._clauses)

    # ---------- encoding helpers ----------
    def _new_var(self) -> int:
        self._check_open()
        self._top += 1
        return self._top

    def _exactly_one(self, lits: List[int]) -> None:
        """ sum(lits) == 1  (ALO + AMO via chosen encoding) """
        self._clauses.append(lits[:])  # ALO
        if len(lits) < 2:
            return
        if self._enc == EncType.pairwise:
            for i in range(len(lits)):
                for j in range(i + 1, len(lits)):
                    self._clauses.append([-lits[i], -lits[j]])
        else:
            amo = CardEnc.atmost(lits=lits, bound=1, top_id=self._top, encoding=self._enc)
            self._clauses.extend(amo.clauses)
            self._top = max(self._top, amo.nv)

    def _gate(self, key: Tuple[Any, ...], build: Callable[[], int]) -> int:
        if key not in self._gates:
            self._gates[key] = build()
        return self._gates[key]

    def _and(self, lits: Iterable[int]) -> int:
        lits = set(lits)
        if -self._true in lits:
            return -self._true
        lits.discard(self._true)
        if not lits:
            return self._true
        if len(lits) == 1:
            return lits.pop()
        ordered = tuple(sorted(lits))

        def build() -> int:
            g = self._new_var()
            for l in ordered:
                self._clauses.append([-g, l])
            self._clauses.append([g] + [-l for l in ordered])
            return g

        return self._gate(("and",) + ordered, build)

    def _or(self, lits: Iterable[int]) -> int:
        lits = set(lits)
        if self._true in lits:
            return self._true
        lits.discard(-self._true)
        if not lits:
            return -self._true
        if len(lits) == 1:
            return lits.pop()
        ordered = tuple(sorted(lits))

        def build() -> int:
            g = self._new_var()
            for l in ordered:
                self._clauses.append([g, -l])
            self._clauses.append([-g] + list(ordered))
            return g

        return self._gate(("or",) + ordered, build)

    def _domain(self, term: Term) -> List[Tuple[int, int]]:
        if isinstance(term, _IntVar):
            return list(term.lits.items())
        return [(int(term), self._true)]

    @staticmethod
    def _key(term: Term) -> Tuple[str, int]:
        if isinstance(term, _IntVar):
            return ("v", id(term))
        return ("c", int(term))

    def _compare(self, op: str, a: Term, b: Term) -> int:
        self._check_open()
        test = _COMPARISONS[op]

        def build() -> int:
            return self._or(
                self._and([la, lb])
                for va, la in self._domain(a)
                for vb, lb in self._domain(b)
                if test(va, vb)
            )

        return self._gate((op, self._key(a), self._key(b)), build)

    # ---------- terms and formulas ----------
    def int_var(self, name: str, lo: int, hi: int) -> _IntVar:
        if lo > hi:
            raise ValueError(f"Empty domain for {name}: {lo}..{hi}")
        var = _IntVar(name, {v: self._new_var() for v in range(lo, hi + 1)})
        self._exactly_one(list(var.lits.values()))
        self._vars.append(var)
        return var

    def const(self, value: int) -> int:
        self._check_open()
        return int(value)

    def true(self) -> int:
        self._check_open()
        return self._true

    def lt(self, a, b): return self._compare("lt", a, b)
    def gt(self, a, b): return self._compare("gt", a, b)
    def le(self, a, b): return self._compare("le", a, b)
    def eq(self, a, b): return self._compare("eq", a, b)

    def and_(self, formulas):
        self._check_open()
        return self._and(formulas)

    def or_(self, formulas):
        self._check_open()
        return self._or(formulas)

    def not_(self, formula):
        self._check_open()
        return -formula

    def distinct(self, terms):
        self._check_open()
        pairs = itertools.combinations(list(terms), 2)
        return self._and(-self.eq(a, b) for a, b in pairs)

    # ---------- solving ----------
    def add(self, formula) -> None:
        self._check_open()
        self._clauses.append([formula])

    def check(self) -> Status:
        self._check_open()
        self._model = None
        log.debug("pysat %s: %d vars, %d clauses", self._solver_name, self._top, len(self._clauses))
        with Solver(name=self._solver_name, bootstrap_with=self._clauses) as s:
            if self._conflict_budget is None:
                result = s.solve()
            else:
                s.conf_budget(self._conflict_budget)
                result = s.solve_limited()
            if result is None:
                return Status.UNKNOWN
            if not result:
                return Status.UNSAT
            self._model = {l for l in s.get_model() if l > 0}
        return Status.SAT

    def value(self, term) -> int:
        self._check_open()
        if self._model is None:
            raise RuntimeError("No model available; check() did not return SAT")
        if not isinstance(term, _IntVar):
            return int(term)
        for v, lit in term.lits.items():
            if lit in self._model:
                return v
        raise RuntimeError(f"Model assigns no value to {term.name}")


ENGINES = {
    "z3": Z3Session,
    "pysat": PysatSession,
}
