"""ddsum._reduce
================
Свёртка последовательностей через Accumulator.

* accumulate — последовательно добавляет элементы и возвращает Accumulator
* accumulated_sum — то же, но сразу возвращает старший член суммы

Для тензоров `dim` задаёт измерение, по которому идёт суммирование;
остальные измерения образуют батч независимых аккумуляторов.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple, Union

import numpy as np
import torch

from ._accumulator import Accumulator, _as_float64

__all__ = [
    "accumulate",
    "accumulated_sum",
]


def _slices(values, dim: Optional[int]) -> Tuple[Iterable, Optional[torch.Size]]:
    """Возвращает (срезы для сложения, форму батча или None)."""
    if isinstance(values, np.ndarray):
        values = _as_float64(values)

    if isinstance(values, torch.Tensor):
        if values.ndim == 0:
            return [values], values.shape
        if dim is None:
            return values.flatten().unbind(0), torch.Size([])
        if dim < 0:
            dim += values.ndim
        batch_shape = values.shape[:dim] + values.shape[dim + 1:]
        return values.unbind(dim), batch_shape

    if dim is not None:
        raise ValueError("dim is only supported for tensor and ndarray inputs")
    return values, None


def accumulate(
    values,
    initial: Union[Accumulator, float, torch.Tensor] = 0.0,
    dim: Optional[int] = None,
) -> Accumulator:
    """
    Складывает `values` по порядку, начиная с `initial`.
    Порядок сложения сохраняется — точность от него почти не зависит.
    """
    acc = initial if isinstance(initial, Accumulator) else Accumulator(initial)
    slices, batch_shape = _slices(values, dim)

    # Пустое измерение dim всё равно даёт батч нужной формы
    if batch_shape is not None and acc.shape != batch_shape:
        s, t = acc._terms()
        shape = torch.broadcast_shapes(acc.shape, batch_shape)
        acc = Accumulator._from_parts(s.broadcast_to(shape).clone(), t.broadcast_to(shape).clone())

    for v in slices:
        acc = acc.add(v)
    return acc


def accumulated_sum(values, dim: Optional[int] = None) -> torch.Tensor:
    """Компенсированная сумма `values` как тензор float64."""
    return accumulate(values, dim=dim).sum()
