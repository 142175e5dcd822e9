"""ddsum — Double-Double running Sum.

Экспортирует EFT-примитив two_sum, аккумулятор Accumulator с удвоенной
точностью и вспомогательные функции свёртки последовательностей.
"""

import warnings

import torch

# Устанавливаем float64 как дефолтный dtype для всех новых тензоров
if torch.get_default_dtype() != torch.float64:
    warnings.warn(
        "ddsum: Принудительно устанавливаю torch.set_default_dtype(torch.float64). "
        "Все новые тензоры будут float64.",
        stacklevel=2
    )
    torch.set_default_dtype(torch.float64)

from ._core import two_sum  # noqa: F401,E402
from ._accumulator import Accumulator  # noqa: F401,E402
from ._reduce import accumulate, accumulated_sum  # noqa: F401,E402

__all__ = [
    "two_sum",
    "Accumulator",
    "accumulate",
    "accumulated_sum",
]
