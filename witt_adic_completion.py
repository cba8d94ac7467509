#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
================================================================================
W(k) 的 p-进完备性：分离性 + 预完备性
p-adic completeness of W(k) for k perfect of characteristic p

工程红线：
  - 极限是惰性向量：w_i = coeff(i, x(i+1))，不请求分量就不计算任何项
  - 每一层的断言都归约到整除性判定器（前缀分量消失）与分量/截断桥
  - 失败必须报告出错的层 n 与分量下标，禁止静默降级

核心架构：
  1. CompatibleSequence    - 相容序列 x(n+1) ≡ x(n) (mod p^n)（p-进 Cauchy 序列）
  2. AdicCompletionEngine  - 分离性判定、对角线极限构造、极限验证、唯一性
  3. 严格验收套件           - run_strict_validation_suite / main

本引擎只对理想族 {(p^n)} 成立；不接受任意嵌套理想过滤。
================================================================================
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from perfect_ring import BaseRingError, GaloisField, PolynomialRingFp
from witt_divisibility import (
    DivisibilityCharacterizer,
    first_disagreement,
    verify_truncation_bridge,
)
from witt_torsion import TorsionFreenessChecker
from witt_vector import (
    IncompatibleSequenceError,
    NotPerfectRingError,
    PerfectWittRing,
    TruncatedWittVector,
    VerificationSpec,
    WittContractViolation,
    WittError,
    WittInputError,
    WittPreconditionError,
    WittRing,
    WittVector,
    check_index,
    require_perfect,
)

_logger = logging.getLogger(__name__)


__all__ = [
    "CompatibleSequence",
    "LimitCertificate",
    "AdicCompletionEngine",
    "run_strict_validation_suite",
    "main",
]


# ===========================================================
# Section 1: 相容序列
# ===========================================================

class CompatibleSequence:
    """
    序列 x: ℕ → W(k)，项按需生成并缓存

    相容性 x(n+1) ≡ x(n) (mod p^n) 是调用方的承诺；
    AdicCompletionEngine.check_compatible 在有限层上检验它。
    """

    def __init__(self, ring: WittRing, terms: Callable[[int], WittVector], label: Optional[str] = None):
        if not isinstance(ring, WittRing):
            raise WittInputError(f"ring must be a WittRing, got {type(ring).__name__}")
        if not callable(terms):
            raise WittInputError("terms must be callable n -> WittVector")
        self._ring = ring
        self._terms = terms
        self._cache: Dict[int, WittVector] = {}
        self._label = label

    @classmethod
    def from_prefix(cls, ring: WittRing, prefix: Sequence[WittVector],
                    label: Optional[str] = None) -> 'CompatibleSequence':
        """有限前缀 x(0..m)，之后恒等于最后一项"""
        items = tuple(prefix)
        if not items:
            raise WittInputError("prefix must contain at least one term")
        for x in items:
            ring.check_vector(x)
        last = len(items) - 1
        return cls(ring, lambda n: items[min(n, last)], label=label)

    @property
    def ring(self) -> WittRing:
        return self._ring

    @property
    def evaluated(self) -> Tuple[int, ...]:
        """已经生成过的项的下标"""
        return tuple(sorted(self._cache))

    def term(self, n: int) -> WittVector:
        n = check_index(n, name="n")
        x = self._cache.get(n)
        if x is None:
            x = self._ring.check_vector(self._terms(n))
            self._cache[n] = x
        return x

    __call__ = term

    def __repr__(self) -> str:
        return f"CompatibleSequence<{self._label or 'anonymous'}>({self._ring!r})"


SequenceLike = Union[CompatibleSequence, Callable[[int], WittVector]]


@dataclass(frozen=True)
class LimitCertificate:
    """
    极限证书：对每个 n ≤ depth 都有 w ≡ x(n) (mod p^n)

    sources[i] 是提供 w_i 的项下标（恒为 i+1）。
    """
    depth: int
    levels_checked: Tuple[int, ...]
    limit_prefix: TruncatedWittVector
    sources: Tuple[int, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "depth": self.depth,
            "levels_checked": list(self.levels_checked),
            "limit_prefix": [repr(c) for c in self.limit_prefix.components],
            "sources": list(self.sources),
        }


# ===========================================================
# Section 2: 完备化引擎
# ===========================================================

class AdicCompletionEngine:
    """
    (p)-进完备性引擎

    (a) 分离性：z ∈ ⋂_n (p^n) ⟹ z = 0
        对每个 n，z ∈ (p^{n+1}) 迫使 z_n = 0（判定器正向）。
    (b) 预完备性：相容序列 x 的极限
            w = (coeff(0, x(1)), coeff(1, x(2)), coeff(2, x(3)), ...)
        对 i < n：x(n) ≡ x(i+1) (mod p^{i+1})，故 coeff(i, x(n)) = coeff(i, x(i+1)) = w_i，
        再由判定器得 w − x(n) ∈ (p^n)。
    """

    def __init__(self, ring: WittRing, spec: Optional[VerificationSpec] = None):
        self._ring: PerfectWittRing = require_perfect(ring, purpose="AdicCompletionEngine")
        self._spec = spec if spec is not None else VerificationSpec.from_env()
        self._characterizer = DivisibilityCharacterizer(self._ring)

    @property
    def ring(self) -> PerfectWittRing:
        return self._ring

    @property
    def spec(self) -> VerificationSpec:
        return self._spec

    @property
    def characterizer(self) -> DivisibilityCharacterizer:
        return self._characterizer

    def _depth(self, depth: Optional[int]) -> int:
        if depth is None:
            return int(self._spec.depth)
        return check_index(depth, name="depth")

    def _as_sequence(self, seq: SequenceLike) -> CompatibleSequence:
        if isinstance(seq, CompatibleSequence):
            if seq.ring != self._ring:
                raise WittInputError(f"序列的环 {seq.ring!r} 与引擎 {self._ring!r} 不一致")
            return seq
        if callable(seq):
            return CompatibleSequence(self._ring, seq)
        raise WittInputError(f"expected CompatibleSequence or callable, got {type(seq).__name__}")

    # ---------------------------------------------------------------
    # (a) 分离性
    # ---------------------------------------------------------------

    def zero_of_intersection(self, z: WittVector, depth: Optional[int] = None) -> TruncatedWittVector:
        """
        z 属于 (p^1), ..., (p^depth) ⟹ z 的前 depth 个分量全为 0

        z 不在某一层时抛 WittPreconditionError，index 为该层指数。
        """
        depth = self._depth(depth)
        self._ring.check_vector(z)
        for n in range(depth):
            if not self._characterizer.test_membership(z, n + 1):
                raise WittPreconditionError(
                    f"z ∉ (p^{n + 1})：不在过滤的交中", index=n + 1
                )
            if not z.coeff(n).is_zero():
                raise WittContractViolation(f"z ∈ (p^{n + 1}) 但分量 {n} 非零")
        return self._ring.truncate(depth, z)

    def is_separated_at(self, z: WittVector, depth: Optional[int] = None) -> bool:
        """(∀ n ≤ depth: z ∈ (p^n)) ⟹ z ≡ 0 below depth"""
        depth = self._depth(depth)
        in_every_level = all(
            self._characterizer.test_membership(z, n) for n in range(1, depth + 1)
        )
        if not in_every_level:
            return True
        return self.zero_of_intersection(z, depth).is_zero()

    # ---------------------------------------------------------------
    # (b) 预完备性
    # ---------------------------------------------------------------

    def check_compatible(self, seq: SequenceLike, upto: Optional[int] = None) -> None:
        """对 n < upto 检验 x(n+1) − x(n) ∈ (p^n)"""
        seq = self._as_sequence(seq)
        upto = self._depth(upto)
        for n in range(upto):
            diff = seq.term(n + 1) - seq.term(n)
            if not self._characterizer.test_membership(diff, n):
                idx = first_disagreement(seq.term(n + 1), seq.term(n), n)
                raise IncompatibleSequenceError(
                    f"x({n + 1}) ≢ x({n}) (mod p^{n})：分量 {idx} 不一致",
                    level=n,
                    index=idx,
                )

    def limit(self, seq: SequenceLike) -> WittVector:
        """对角线极限 w_i = coeff(i, x(i+1))（惰性）"""
        seq = self._as_sequence(seq)
        return self._ring.vector(lambda i: seq.term(i + 1).coeff(i), label="lim")

    def verify_limit(self, seq: SequenceLike, w: Optional[WittVector] = None,
                     upto: Optional[int] = None) -> LimitCertificate:
        """
        对每个 n ≤ upto 检验 w ≡ x(n) (mod p^n)

        同时走两条路：桥（前 n 个分量一致）与判定器（w − x(n) ∈ (p^n)），
        两者不一致说明算术协作方损坏。
        """
        seq = self._as_sequence(seq)
        upto = self._depth(upto)
        own_limit = w is None
        if own_limit:
            w = self.limit(seq)
        else:
            self._ring.check_vector(w)

        levels: List[int] = []
        for n in range(upto + 1):
            xn = seq.term(n)
            idx = first_disagreement(w, xn, n)
            in_ideal = self._characterizer.test_membership(w - xn, n)
            if (idx is None) != in_ideal:
                raise WittContractViolation(
                    f"层 n={n}: 分量一致={idx is None} 但 w − x(n) ∈ (p^n)={in_ideal}"
                )
            if idx is not None:
                if own_limit:
                    raise IncompatibleSequenceError(
                        f"对角线极限在层 n={n} 的分量 {idx} 处与 x({n}) 不一致：序列不相容",
                        level=n,
                        index=idx,
                    )
                raise WittPreconditionError(
                    f"w 不是极限：层 n={n} 的分量 {idx} 与 x({n}) 不一致", index=n
                )
            _logger.debug("verify_limit: level %s ok", n)
            levels.append(n)

        return LimitCertificate(
            depth=upto,
            levels_checked=tuple(levels),
            limit_prefix=self._ring.truncate(upto, w),
            sources=tuple(i + 1 for i in range(upto)),
        )

    def limits_agree(self, seq: SequenceLike, w1: WittVector, w2: WittVector,
                     depth: Optional[int] = None) -> bool:
        """
        极限唯一性

        w1, w2 都是 x 的极限 ⟹ 对每个 n，w1 − w2 ∈ (p^n) ⟹ 由分离性 w1 = w2。
        """
        seq = self._as_sequence(seq)
        depth = self._depth(depth)
        self.verify_limit(seq, w1, depth)
        self.verify_limit(seq, w2, depth)
        d = w1 - w2
        for n in range(1, depth + 1):
            if not self._characterizer.test_membership(d, n):
                raise WittContractViolation(f"两个极限之差不在 (p^{n}) 中")
        if not self.zero_of_intersection(d, depth).is_zero():
            return False
        return verify_truncation_bridge(w1, w2, depth).coefficients_agree

    # ---------------------------------------------------------------
    # 诊断与报告
    # ---------------------------------------------------------------

    def agreement_depth_matrix(self, seq: SequenceLike, terms: int,
                               depth: Optional[int] = None) -> np.ndarray:
        """
        M[a, b] = x(a) 与 x(b) 前导分量一致的个数（上限 depth）

        相容 ⟺ 对每个 n，M[n, n+1] ≥ min(n, depth)。
        """
        seq = self._as_sequence(seq)
        depth = self._depth(depth)
        terms = check_index(terms, name="terms")
        m = np.zeros((terms, terms), dtype=np.int64)
        for a in range(terms):
            m[a, a] = depth
            for b in range(a + 1, terms):
                idx = first_disagreement(seq.term(a), seq.term(b), depth)
                m[a, b] = m[b, a] = depth if idx is None else idx
        return m

    @staticmethod
    def window_is_compatible(matrix: np.ndarray) -> bool:
        """由一致深度矩阵判定窗口内的相容性"""
        terms = matrix.shape[0]
        if terms < 2:
            return True
        depth = int(matrix[0, 0])
        required = np.minimum(np.arange(terms - 1), depth)
        return bool(np.all(np.diagonal(matrix, offset=1) >= required))

    def completeness_report(self, seq: SequenceLike, depth: Optional[int] = None) -> Dict[str, Any]:
        """相容性 + 极限 + 唯一性 的完整报告（任何一步失败即抛异常）"""
        seq = self._as_sequence(seq)
        depth = self._depth(depth)
        self.check_compatible(seq, depth)
        w = self.limit(seq)
        cert = self.verify_limit(seq, w, depth)
        unique = self.limits_agree(seq, w, self.limit(seq), depth)
        return {
            "ring": repr(self._ring),
            "depth": depth,
            "compatible": True,
            "limit": cert.as_dict(),
            "unique": unique,
        }

    def is_adic_complete_at(self, seq: SequenceLike, depth: Optional[int] = None) -> bool:
        try:
            report = self.completeness_report(seq, depth)
        except IncompatibleSequenceError as e:
            _logger.info("sequence incompatible at level %s (index %s)", e.level, e.index)
            return False
        return bool(report["unique"])


# ===========================================================
# Section 3: 严格验收套件
# ===========================================================

def _configure_smoke_logging(quiet: bool = False) -> None:
    """只在未配置 handler 时注入默认配置，避免污染宿主应用。"""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="[%(levelname)s] %(name)s: %(message)s",
        )
    root.setLevel(logging.WARNING if quiet else logging.INFO)


def run_strict_validation_suite(prime: int = 2, degree: int = 1, depth: int = 3) -> bool:
    """
    严格验收：对 W(𝔽_{p^d}) 在深度 depth 上逐项检验

    1. 分量/截断桥三者一致
    2. 成员判定往返：p^n · cofactor(x, n) = x；p^n · u ∈ (p^n)
    3. n = 0 边界
    4. 挠自由消去链
    5. 分离性
    6. 对角线极限与唯一性
    7. 非完善环在构造期被拒绝
    任何一项失败都返回 False
    """
    field = GaloisField(prime, degree)
    ring = WittRing.over(field)
    engine = AdicCompletionEngine(ring, VerificationSpec(depth=depth))
    char = engine.characterizer
    torsion = TorsionFreenessChecker(ring)
    p = ring.p

    results: List[Tuple[str, bool]] = []

    def log_test(name: str, passed: bool, detail: str = "") -> None:
        results.append((name, passed))
        level = logging.INFO if passed else logging.ERROR
        _logger.log(level, "[TEST %s] %s: %s %s", len(results), name, "PASS" if passed else "FAIL", detail)

    gen = field.generator()
    samples = [
        ring.one(),
        ring.teichmuller(gen),
        ring.from_coefficients([gen, 1, gen * gen]),
        ring.from_integer(p + 1),
    ]

    for i, x in enumerate(samples):
        for j, y in enumerate(samples):
            cert = verify_truncation_bridge(x, y, depth)
            log_test(f"bridge[{i},{j}]", cert.consistent, repr(cert.as_dict()))

    for n in range(depth):
        for i, u in enumerate(samples):
            log_test(f"p^{n}·u[{i}] in (p^{n})", char.test_membership(char.multiple(u, n), n))
    # 余因子往返需要 P_{depth-1+n}，只取 n ≤ 1
    for n in range(min(depth, 2)):
        for i, u in enumerate(samples):
            x = char.multiple(u, n)
            log_test(f"cofactor roundtrip n={n} u[{i}]", char.verify_cofactor(x, n, depth))

    log_test("n=0 boundary", all(char.test_membership(x, 0) for x in samples))

    for i, x in enumerate(samples):
        log_test(f"torsion implication x[{i}]", torsion.is_not_zero_divisor_at(x, depth))
    cert = torsion.cancellation_chain(ring.zero(), depth)
    log_test("torsion chain on 0", cert.x_vanishes)

    log_test("separated on 0", engine.is_separated_at(ring.zero(), depth))
    log_test("p^depth·1 not in intersection beyond depth",
             not char.test_membership(char.p_power(depth), depth + 1))

    def terms(n: int) -> WittVector:
        # 部分和 Σ_{i<n} p^i·[α]
        acc = ring.zero()
        for i in range(n):
            acc = acc + char.multiple(ring.teichmuller(gen), i)
        return acc

    seq = CompatibleSequence(ring, terms, label="partial sums")
    report = engine.completeness_report(seq, depth)
    log_test("limit of partial sums", bool(report["unique"]), repr(report["limit"]))

    try:
        AdicCompletionEngine(WittRing.over(PolynomialRingFp(prime)))
    except NotPerfectRingError:
        log_test("non-perfect ring rejected", True)
    else:
        log_test("non-perfect ring rejected", False)

    failed = [name for name, ok in results if not ok]
    _logger.info("总测试数: %s 通过: %s 失败: %s", len(results), len(results) - len(failed), len(failed))
    return not failed


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="W(k) p-adic completeness strict validation")
    parser.add_argument("--prime", type=int, default=2, help="characteristic p (default: 2)")
    parser.add_argument("--degree", type=int, default=1, help="k = GF(p^degree) (default: 1)")
    parser.add_argument("--depth", type=int, default=None,
                        help="verification depth (default: WITT_CHECK_DEPTH or 4)")
    parser.add_argument("--quiet", action="store_true", help="suppress per-test logs")
    args = parser.parse_args(argv)

    _configure_smoke_logging(args.quiet)
    try:
        depth = args.depth if args.depth is not None else VerificationSpec.from_env().depth
        ok = run_strict_validation_suite(args.prime, args.degree, depth)
    except (WittError, BaseRingError, ValueError) as e:
        _logger.error("validation aborted: %s", e)
        return 2
    _logger.info("witt_adic_completion smoke: %s", "PASS" if ok else "FAIL")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
