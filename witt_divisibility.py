#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
================================================================================
p 幂整除性 ⟺ 前缀分量消失
Divisibility by p^n versus vanishing of leading Witt coefficients

两个组件：
  1. 分量/截断桥   ∀ i<n: x_i = y_i  ⟺  truncate(n, x) = truncate(n, y)
  2. 整除性判定器  x ∈ (p^n)         ⟺  ∀ i<n: x_i = 0

判定器的两个方向：
  - 正向（x = p^n·u ⟹ 前 n 个分量为 0）：直接计算 p^n·u 的前缀
  - 反向（前 n 个分量为 0 ⟹ x = p^n·u）：构造余因子
        u = F^{-n}(shift(n, x))
    正确性：p^n = (V∘F)^n，且由重构引理 V^n(shift(n, x)) = x，
        p^n · F^{-n}(shift(n, x)) = V^n(F^n(F^{-n}(shift(n, x)))) = x
    F^{-1} 只在 k 完善时存在，因此余因子构造只接受 PerfectWittRing。

边界：n = 0 时 (p^0) 是整个环，成员判定恒真，消失条件为空。

k 不完善时前 n 个分量为 0 只说明 x ∈ V^n W(k)，它严格大于 p^n W(k)；
因此判定器只接受 PerfectWittRing，V^n 像的判定单独提供（in_verschiebung_image）。
================================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from perfect_ring import RingElement
from witt_vector import (
    PerfectWittRing,
    TruncatedWittVector,
    WittContractViolation,
    WittInputError,
    WittPreconditionError,
    WittRing,
    WittVector,
    check_index,
    require_perfect,
)

_logger = logging.getLogger(__name__)


__all__ = [
    "BridgeCertificate",
    "coeffs_agree_below",
    "first_disagreement",
    "truncations_agree",
    "truncation_eq_of_coeffs",
    "coeffs_eq_of_truncation",
    "difference_vanishes_below",
    "verify_truncation_bridge",
    "in_verschiebung_image",
    "reconstruct",
    "DivisibilityCharacterizer",
    "test_membership",
    "construct_cofactor",
]


def _check_pair(x: WittVector, y: WittVector) -> WittRing:
    if not isinstance(x, WittVector) or not isinstance(y, WittVector):
        raise WittInputError(
            f"expected two WittVectors, got {type(x).__name__}, {type(y).__name__}"
        )
    if x.ring != y.ring:
        raise WittInputError(f"Witt环不匹配: {x.ring!r} vs {y.ring!r}")
    return x.ring


# ══════════════════════════════════════════════════════════════════════════════
# 第一部分：分量/截断桥
# Part I: coefficient / truncation bridge
# ══════════════════════════════════════════════════════════════════════════════

def first_disagreement(x: WittVector, y: WittVector, n: int) -> Optional[int]:
    """最小的 i < n 使得 x_i ≠ y_i；前 n 个分量全一致时返回 None"""
    _check_pair(x, y)
    for i in range(check_index(n, name="n")):
        if x.coeff(i) != y.coeff(i):
            return i
    return None


def coeffs_agree_below(x: WittVector, y: WittVector, n: int) -> bool:
    """∀ i<n: x_i = y_i"""
    return first_disagreement(x, y, n) is None


def truncations_agree(x: WittVector, y: WittVector, n: int) -> bool:
    """truncate(n, x) = truncate(n, y)"""
    ring = _check_pair(x, y)
    return ring.truncate(n, x) == ring.truncate(n, y)


def truncation_eq_of_coeffs(x: WittVector, y: WittVector, n: int) -> TruncatedWittVector:
    """
    正向：由逐分量相等构造截断相等

    逐个比较 i < n 的分量并据此搭建公共截断；
    任何一个分量不等都是调用方错误，报告该下标。
    """
    ring = _check_pair(x, y)
    common = []
    for i in range(check_index(n, name="n")):
        xi, yi = x.coeff(i), y.coeff(i)
        if xi != yi:
            raise WittPreconditionError(
                f"分量 {i} 不一致: {xi!r} ≠ {yi!r}（要求前 {n} 个分量相等）", index=i
            )
        common.append(xi)
    return TruncatedWittVector(ring, tuple(common))


def coeffs_eq_of_truncation(tx: TruncatedWittVector, ty: TruncatedWittVector) -> Tuple[RingElement, ...]:
    """
    反向：由截断相等逐个取出分量

    返回公共分量 (c_0, ..., c_{n-1})；截断不等时报告第一个不同的下标。
    """
    if not isinstance(tx, TruncatedWittVector) or not isinstance(ty, TruncatedWittVector):
        raise WittInputError("coeffs_eq_of_truncation expects two TruncatedWittVectors")
    if tx.ring != ty.ring or tx.length != ty.length:
        raise WittInputError(f"截断不可比较: W_{tx.length} vs W_{ty.length}")
    out = []
    for i in range(tx.length):
        if tx.coeff(i) != ty.coeff(i):
            raise WittPreconditionError(f"截断在分量 {i} 处不同", index=i)
        out.append(tx.coeff(i))
    return tuple(out)


def difference_vanishes_below(x: WittVector, y: WittVector, n: int) -> bool:
    """x - y 的前 n 个分量为 0（与逐分量相等等价）"""
    _check_pair(x, y)
    return (x - y).vanishes_below(n)


@dataclass(frozen=True)
class BridgeCertificate:
    """分量一致 / 截断一致 / 差属于 (p^n) 三者的同一层判定结果"""
    level: int
    coefficients_agree: bool
    truncations_agree: bool
    difference_in_ideal: bool
    first_disagreement: Optional[int]

    @property
    def consistent(self) -> bool:
        return self.coefficients_agree == self.truncations_agree == self.difference_in_ideal

    def as_dict(self) -> dict:
        return {
            "level": self.level,
            "coefficients_agree": self.coefficients_agree,
            "truncations_agree": self.truncations_agree,
            "difference_in_ideal": self.difference_in_ideal,
            "first_disagreement": self.first_disagreement,
        }


def verify_truncation_bridge(x: WittVector, y: WittVector, n: int) -> BridgeCertificate:
    """
    同时判定
        (∀ i<n, x_i = y_i)  ⟺  truncate(n,x) = truncate(n,y)  ⟺  (x − y) ∈ (p^n)
    三者不一致说明截断或算术协作方损坏，直接抛异常。
    理想判定需要 k 完善（否则 NotPerfectRingError）。
    """
    ring = _check_pair(x, y)
    n = check_index(n, name="n")
    idx = first_disagreement(x, y, n)
    cert = BridgeCertificate(
        level=n,
        coefficients_agree=idx is None,
        truncations_agree=truncations_agree(x, y, n),
        difference_in_ideal=DivisibilityCharacterizer(ring).test_membership(x - y, n),
        first_disagreement=idx,
    )
    if not cert.consistent:
        raise WittContractViolation(f"分量/截断/理想三者判定不一致: {cert.as_dict()!r}")
    return cert


# ══════════════════════════════════════════════════════════════════════════════
# 第二部分：整除性判定器
# Part II: divisibility characterizer
# ══════════════════════════════════════════════════════════════════════════════

def in_verschiebung_image(x: WittVector, n: int) -> bool:
    """x ∈ V^n W(k) ⟺ 前 n 个分量为 0（任意特征 p 系数环）"""
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return x.first_nonzero_below(n) is None


def reconstruct(x: WittVector, n: int) -> WittVector:
    """重构引理：前 n 个分量为 0 时 V^n(shift(n, x)) = x（任意特征 p 系数环）"""
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    n = check_index(n, name="n")
    idx = x.first_nonzero_below(n)
    if idx is not None:
        raise WittPreconditionError(
            f"x ∉ V^{n} W(k): 分量 {idx} 非零 ({x.coeff(idx)!r})", index=idx
        )
    ring = x.ring
    return ring.iterate_verschiebung(ring.shift(n, x), n)


class DivisibilityCharacterizer:
    """
    (p^n) 成员判定与余因子构造（仅完善系数环）

    判定：x ∈ (p^n) ⟺ x_0 = ... = x_{n-1} = 0
    余因子：u = F^{-n}(shift(n, x))，满足 p^n · u = x
    非完善环在构造时抛 NotPerfectRingError。
    """

    def __init__(self, ring: WittRing):
        self._ring: PerfectWittRing = require_perfect(ring, purpose="DivisibilityCharacterizer")

    @property
    def ring(self) -> PerfectWittRing:
        return self._ring

    def nonvanishing_index(self, x: WittVector, n: int) -> Optional[int]:
        """第一个阻止 x ∈ (p^n) 的分量下标"""
        self._ring.check_vector(x)
        return x.first_nonzero_below(n)

    def test_membership(self, x: WittVector, n: int) -> bool:
        """x ∈ (p^n)；n = 0 时恒真"""
        return self.nonvanishing_index(x, n) is None

    def valuation(self, x: WittVector, cap: int) -> int:
        """
        截断的 p-进赋值 min(v_p(x), cap)

        即最大的 n ≤ cap 使得 x ∈ (p^n)，也就是第一个非零分量的下标。
        """
        idx = self.nonvanishing_index(x, cap)
        return cap if idx is None else idx

    def p_power(self, n: int) -> WittVector:
        """p^n ∈ W(k)（整数嵌入）"""
        return self._ring.from_integer(self._ring.p ** check_index(n, name="n"))

    def multiple(self, u: WittVector, n: int) -> WittVector:
        """p^n · u（Witt 乘法）"""
        self._ring.check_vector(u)
        return self._ring.mul(self.p_power(n), u)

    def vanishing_of_multiple(self, u: WittVector, n: int) -> Tuple[RingElement, ...]:
        """
        正向：x = p^n·u ⟹ x 的前 n 个分量为 0

        计算并返回 (p^n·u)_0, ..., (p^n·u)_{n-1}；
        出现非零分量说明乘法协作方违反了 p^n 的结构恒等式。
        """
        x = self.multiple(u, n)
        prefix = x.coefficients(n)
        for i, c in enumerate(prefix):
            if not c.is_zero():
                raise WittContractViolation(
                    f"(p^{n}·u) 的分量 {i} 非零: {c!r}",
                )
        return prefix

    def _require_vanishing(self, x: WittVector, n: int) -> None:
        idx = self.nonvanishing_index(x, n)
        if idx is not None:
            raise WittPreconditionError(
                f"x ∉ (p^{n}): 分量 {idx} 非零 ({x.coeff(idx)!r})", index=idx
            )

    def reconstruct(self, x: WittVector, n: int) -> WittVector:
        """重构引理：前 n 个分量为 0 时 V^n(shift(n, x)) = x"""
        self._ring.check_vector(x)
        return reconstruct(x, n)

    def construct_cofactor(self, x: WittVector, n: int) -> WittVector:
        """
        反向：构造 u 使得 x = p^n · u

        前置条件：x_0 = ... = x_{n-1} = 0（否则 WittPreconditionError，index 为第一个非零分量）
        """
        ring = self._ring
        n = check_index(n, name="n")
        self._require_vanishing(x, n)
        _logger.debug("construct_cofactor: n=%s ring=%r", n, ring)
        return ring.iterate_frobenius_inverse(ring.shift(n, x), n)

    def verify_cofactor(self, x: WittVector, n: int, depth: int) -> bool:
        """p^n · construct_cofactor(x, n) 与 x 的前 depth 个分量一致"""
        u = self.construct_cofactor(x, n)
        depth = check_index(depth, name="depth")
        return self._ring.truncate(depth, self.multiple(u, n)) == self._ring.truncate(depth, x)


def test_membership(x: WittVector, n: int) -> bool:
    """x ∈ (p^n)，环取自 x 本身（k 必须完善）"""
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return DivisibilityCharacterizer(x.ring).test_membership(x, n)


def construct_cofactor(x: WittVector, n: int) -> WittVector:
    """u 使得 x = p^n · u（k 必须完善）"""
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return DivisibilityCharacterizer(x.ring).construct_cofactor(x, n)
