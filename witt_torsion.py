#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
p 在 W(k) 上不是零因子（k 完善，特征 p）

消去链：
    x·p = 0
    ⟹ F(V(x)) = 0          （交换律 F∘V = p）
    ⟹ V(x) = 0             （F 单射：k 完善时 F 是自同构，V(x) = F^{-1}(x·p)）
    ⟹ x = 0                （V 单射：shift(1, ·) 是左逆）

有限深度版本：(x·p)_{i+1} 只依赖 x_0..x_i，
因此 "x·p 的前 depth+1 个分量为 0" 推出 "x 的前 depth 个分量为 0"。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from witt_vector import (
    PerfectWittRing,
    TruncatedWittVector,
    WittContractViolation,
    WittPreconditionError,
    WittRing,
    WittVector,
    check_index,
    require_perfect,
)

_logger = logging.getLogger(__name__)


__all__ = [
    "TorsionCertificate",
    "TorsionFreenessChecker",
]


@dataclass(frozen=True)
class TorsionCertificate:
    """消去链每一步在有限深度上的截断证据"""
    depth: int
    p_multiple: TruncatedWittVector
    verschiebung_image: TruncatedWittVector
    recovered: TruncatedWittVector

    @property
    def x_vanishes(self) -> bool:
        return self.recovered.is_zero()


class TorsionFreenessChecker:
    """x·p = 0 ⟹ x = 0 的两步消去；只对完善系数环构造"""

    def __init__(self, ring: WittRing):
        self._ring: PerfectWittRing = require_perfect(ring, purpose="TorsionFreenessChecker")

    @property
    def ring(self) -> PerfectWittRing:
        return self._ring

    def p_times(self, x: WittVector) -> WittVector:
        """x · p（Witt 乘法，p 经整数嵌入）"""
        self._ring.check_vector(x)
        return self._ring.mul(x, self._ring.from_integer(self._ring.p))

    def cancel_frobenius(self, y: WittVector) -> WittVector:
        """F(z) = y ⟹ z = F^{-1}(y)"""
        return self._ring.frobenius_inverse(y)

    def cancel_verschiebung(self, z: WittVector) -> WittVector:
        """V(x) = z ⟹ x = shift(1, z)；要求 z_0 = 0"""
        self._ring.check_vector(z)
        if not z.coeff(0).is_zero():
            raise WittPreconditionError(
                f"{z!r} 不在 V 的像中: 分量 0 非零", index=0
            )
        return self._ring.shift(1, z)

    def cancellation_chain(self, x: WittVector, depth: int) -> TorsionCertificate:
        """
        在深度 depth 上执行消去链

        前置条件：x·p 的前 depth+1 个分量为 0（否则报告第一个非零分量）。
        交换律或单射性在该深度失败时抛 WittContractViolation。
        """
        ring = self._ring
        depth = check_index(depth, name="depth")
        px = self.p_times(x)

        idx = px.first_nonzero_below(depth + 1)
        if idx is not None:
            raise WittPreconditionError(
                f"x·p 在分量 {idx} 处非零，消去链不适用", index=idx
            )

        vx = ring.verschiebung(x)
        if ring.truncate(depth + 1, ring.frobenius(vx)) != ring.truncate(depth + 1, px):
            raise WittContractViolation(f"交换律 F(V(x)) = p·x 在深度 {depth + 1} 处失败")

        preimage = self.cancel_frobenius(px)
        if ring.truncate(depth + 1, preimage) != ring.truncate(depth + 1, vx):
            raise WittContractViolation(f"F^{{-1}}(x·p) ≠ V(x)（深度 {depth + 1}）")

        recovered = self.cancel_verschiebung(preimage)
        if ring.truncate(depth, recovered) != ring.truncate(depth, x):
            raise WittContractViolation(f"shift(1, V(x)) ≠ x（深度 {depth}）")
        if not recovered.vanishes_below(depth):
            raise WittContractViolation(f"消去链结束时 x 的前 {depth} 个分量不为 0")

        _logger.debug("cancellation_chain: depth=%s ring=%r", depth, ring)
        return TorsionCertificate(
            depth=depth,
            p_multiple=ring.truncate(depth + 1, px),
            verschiebung_image=ring.truncate(depth + 1, preimage),
            recovered=ring.truncate(depth, recovered),
        )

    def is_not_zero_divisor_at(self, x: WittVector, depth: int) -> bool:
        """(x·p ≡ 0 below depth+1) ⟹ (x ≡ 0 below depth)"""
        depth = check_index(depth, name="depth")
        if not self.p_times(x).vanishes_below(depth + 1):
            return True
        return self.cancellation_chain(x, depth).x_vanishes

    def converse_holds_at(self, depth: int) -> bool:
        """0·p = 0"""
        return self.p_times(self._ring.zero()).vanishes_below(check_index(depth, name="depth"))
