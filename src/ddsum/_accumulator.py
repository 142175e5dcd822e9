"""ddsum._accumulator
=====================
Реализация класса Accumulator — двухкомпонентной ("double-double")
бегущей суммы по схеме Shewchuk.

Значение хранится как пара `(sum, correction)` тензоров `torch.float64`,
истинная сумма равна `sum + correction` с удвоенной точностью.
Экземпляр неизменяем: каждое `add` возвращает новый Accumulator.
"""

from __future__ import annotations

import numbers
from typing import Any, List, Optional, Tuple, Union

import mpmath
import numpy as np
import torch

from ._core import two_sum

__all__ = ["Accumulator"]


def _as_float64(value: Any, device: Optional[torch.device] = None) -> torch.Tensor:
    """Приводит вход к тензору float64 без потери точности."""
    if isinstance(value, torch.Tensor):
        if not value.is_floating_point():
            raise TypeError(f"expected a floating-point tensor, got {value.dtype}")
        if device is None:
            return value.to(torch.float64)
        return value.to(dtype=torch.float64, device=device)

    if isinstance(value, (np.ndarray, np.generic)):
        arr = np.asarray(value)
        # float128/longdouble в float64 без округления не помещается
        if not np.issubdtype(arr.dtype, np.floating) or arr.dtype.itemsize > 8:
            raise TypeError(f"expected a float16/float32/float64 array, got {arr.dtype}")
        return torch.as_tensor(arr.astype(np.float64), device=device)

    if isinstance(value, numbers.Integral):
        try:
            as_float = float(value)
        except OverflowError:
            raise ValueError(f"integer {value} is not exactly representable as float64") from None
        if int(as_float) != value:
            raise ValueError(f"integer {value} is not exactly representable as float64")
        return torch.tensor(as_float, dtype=torch.float64, device=device)

    # Fraction и прочие numbers.Real в float64 в общем случае не помещаются
    if isinstance(value, float):
        return torch.tensor(float(value), dtype=torch.float64, device=device)

    raise TypeError(f"cannot accumulate value of type {type(value).__name__}")


class Accumulator:
    """
    Аккумулятор суммы с удвоенной точностью.

    Позволяет последовательно складывать много чисел float64/float32,
    сохраняя примерно вдвое больше значащих бит, чем обычный float64
    счётчик: ошибка округления каждого шага переносится в член `correction`.

    Алгоритм: J. R. Shewchuk, "Adaptive Precision Floating-Point Arithmetic
    and Fast Robust Geometric Predicates", Discrete & Computational Geometry
    18(3) 305-363 (1997).

    Тензоры `sum`/`correction` могут иметь любую форму: тогда это батч
    независимых аккумуляторов, складываемых поэлементно (с broadcasting).
    """

    def __init__(self, value: Union["Accumulator", float, torch.Tensor] = 0.0):
        if isinstance(value, Accumulator):
            self._sum = value._sum.clone()
            self._correction = value._correction.clone()
            return
        # clone: float64-тензор вызывающего не должен стать нашим состоянием
        self._sum = _as_float64(value).clone()
        self._correction = torch.zeros_like(self._sum)

    @classmethod
    def _from_parts(cls, s: torch.Tensor, t: torch.Tensor) -> Accumulator:
        acc = cls.__new__(cls)
        acc._sum = s
        acc._correction = t
        return acc

    @classmethod
    def from_mpmath(cls, x, mp_ctx=None) -> Accumulator:
        """
        Создает Accumulator из mpmath-числа (или списка чисел).
        Старшая часть — ближайший float64, младшая — ближайший float64
        к остатку, так что пара не перекрывается.
        """
        if mp_ctx is None:
            mp_ctx = mpmath.mp

        is_scalar = not isinstance(x, (list, tuple, np.ndarray))
        values = [x] if is_scalar else list(x)
        if not values:
            raise ValueError("from_mpmath expects at least one value")

        heads, tails = [], []
        for v in values:
            residue = mp_ctx.mpf(v)
            head = float(residue)
            heads.append(head)
            # Вычитание в контексте mp_ctx, чтобы не потерять младшие биты
            tails.append(float(residue - mp_ctx.mpf(head)))

        s = torch.tensor(heads, dtype=torch.float64)
        t = torch.tensor(tails, dtype=torch.float64)
        if is_scalar:
            s, t = s.squeeze(0), t.squeeze(0)
        return cls._from_parts(s, t)

    @property
    def correction(self) -> torch.Tensor:
        """Младший член (накопленная ошибка округления)."""
        return self._correction.clone()

    @property
    def shape(self) -> torch.Size:
        return self._sum.shape

    @property
    def device(self):
        return self._sum.device

    def copy(self) -> Accumulator:
        return Accumulator(self)

    def sum(self, value=None) -> torch.Tensor:
        """
        Возвращает текущую сумму (только старший член).

        Если передан `value`, возвращает сумму, которая получилась бы после
        `add(value)`; сам аккумулятор при этом не меняется.
        """
        if value is not None:
            return self.add(value)._sum
        return self._sum.clone()

    def add(self, value) -> Accumulator:
        """Возвращает новый Accumulator со значением `self + value`."""
        y = _as_float64(value, device=self._sum.device)

        # Сначала сворачиваем y с поправкой, затем результат — со старшим членом
        y, u = two_sum(y, self._correction)
        s, t = two_sum(y, self._sum)

        # Если старший член схлопнулся в ноль, u переносится в sum.
        # В этой ветке t — точный ноль: сумма двух float64, округлённая
        # к нулю, всегда точна. Исходные варианты алгоритма расходятся здесь
        # (поправка сбрасывается в 0 или остаётся t'), но результат один и тот же.
        collapsed = s == 0
        new_sum = torch.where(collapsed, u, s)
        new_correction = torch.where(collapsed, t, t + u)
        return Accumulator._from_parts(new_sum, new_correction)

    def negate(self) -> Accumulator:
        return Accumulator._from_parts(-self._sum, -self._correction)

    def to_mpmath(self, mp_ctx=None) -> Union[Any, List[Any]]:
        """
        Точное значение `sum + correction` в mpmath.

        Для скалярного аккумулятора возвращает mpf, для батча — плоский
        список mpf в порядке `flatten()`.
        """
        if mp_ctx is None:
            mp_ctx = mpmath.mp

        pairs = zip(self._sum.flatten().tolist(), self._correction.flatten().tolist())
        values = [mp_ctx.fsum([mp_ctx.mpf(s), mp_ctx.mpf(t)]) for s, t in pairs]
        if self._sum.ndim == 0:
            return values[0]
        return values

    def _terms(self) -> Tuple[torch.Tensor, torch.Tensor]:
        return self._sum, self._correction

    # --- Магические методы для операторов ---
    def __add__(self, other) -> Accumulator:
        if isinstance(other, Accumulator):
            s, t = other._terms()
            return self.add(s).add(t)
        return self.add(other)

    def __radd__(self, other) -> Accumulator:
        return self.__add__(other)

    def __sub__(self, other) -> Accumulator:
        if isinstance(other, Accumulator):
            return self.__add__(other.negate())
        return self.add(-_as_float64(other, device=self._sum.device))

    def __rsub__(self, other) -> Accumulator:
        return self.negate().add(other)

    def __neg__(self) -> Accumulator:
        return self.negate()

    def __float__(self) -> float:
        if self._sum.numel() != 1:
            raise TypeError("only single-element accumulators can be converted to float")
        return float(self._sum)

    def __repr__(self) -> str:
        s = self._sum.tolist()
        t = self._correction.tolist()
        return f"Accumulator(sum={s!r}, correction={t!r})"
