"""ddsum._core
===============
Числовой примитив «error-free transformation» (EFT), на котором
построен аккумулятор.

* two_sum — точное представление суммы двух float64

Операция работает покомпонентно на `torch.float64` тензорах
и возвращает пару (value, error) такой же (broadcast) формы.
"""

from __future__ import annotations

from typing import Tuple

import torch

__all__ = ["two_sum"]


def two_sum(a: torch.Tensor, b: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
    """Двойная сумма (Knuth + Kahan).

    Возвращает `(s, e)` такие, что `a + b == s + e` *точно* в
    вещественной арифметике, где `s` — округлённая сумма, `e` — ошибка
    округления. Порядок аргументов по модулю не важен (в отличие от
    fast_two_sum). Работает для broadcast-совместимых тензоров `float64`.
    """
    if a.dtype != torch.float64 or b.dtype != torch.float64:
        raise TypeError("two_sum expects float64 tensors")

    s = a + b
    bp = s - a
    ap = s - bp
    delta_b = b - bp
    delta_a = a - ap
    e = delta_a + delta_b

    # Для бесконечной суммы точная ошибка не имеет смысла — возвращаем e=0.
    # NaN распространяется сам: и s, и e остаются NaN.
    e = torch.where(torch.isinf(s), torch.zeros_like(e), e)
    return s, e
