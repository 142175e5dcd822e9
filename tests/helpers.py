import math
from typing import Iterable, Tuple

import torch
from mpmath import mp

from ddsum import Accumulator

mp.dps = 200  # Повысим точность для надежности

# Хватает, чтобы сумма любых float64 из диапазона [2^-1074, 2^1024] была точной
EXACT_PREC = 2200


def exact_sum(values: Iterable[float]) -> mp.mpf:
    """Точная сумма последовательности float64 через mpmath."""
    with mp.workprec(EXACT_PREC):
        return +mp.fsum(mp.mpf(float(v)) for v in values)


def exact_value(acc: Accumulator) -> mp.mpf:
    """Точное значение sum + correction скалярного аккумулятора."""
    with mp.workprec(EXACT_PREC):
        return +acc.to_mpmath(mp)


def state(acc: Accumulator) -> Tuple[float, float]:
    """Пара (sum, correction) как обычные float для сравнения состояний."""
    return acc.sum().item(), acc.correction.item()


def naive_sum(values: Iterable[float]) -> float:
    """Обычная бегущая сумма float64 (без компенсации)."""
    total = 0.0
    for v in values:
        total += v
    return total


def ulp_distance(value: float, reference: mp.mpf) -> float:
    """Расстояние от value до reference в ULP числа reference."""
    ref = float(reference)
    with mp.workprec(EXACT_PREC):
        return float(abs(mp.mpf(value) - reference) / mp.mpf(math.ulp(ref)))


def f64(x) -> torch.Tensor:
    return torch.tensor(x, dtype=torch.float64)
