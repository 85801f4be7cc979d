"""
Error taxonomy for strategy analysis.

Hard failures (surfaced to the caller):
- AuthenticationError: no signed-in user
- NoDataError / InsufficientDataError: not enough monthly data

Soft failures (recovered by the local rule-based plan when allowed):
- AiProviderError: network/HTTP/malformed response from the AI call
- PlanValidationError: AI response misses required fields

Never surfaced:
- PersistenceError: cache/save failure, only logged
"""


class StrategyError(Exception):
    """Base class; `user_message` is the short text shown to end users."""

    default_message = "Terjadi kesalahan saat analisis strategi"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.user_message = message or self.default_message


class AuthenticationError(StrategyError):
    default_message = "Pengguna belum masuk (login)"


class NoDataError(StrategyError):
    default_message = "Belum ada data bulanan. Silakan import data transaksi terlebih dahulu."


class InsufficientDataError(StrategyError):
    default_message = (
        "Minimal 2 bulan data diperlukan untuk analisis strategis. "
        "Silakan import lebih banyak data transaksi."
    )


class AiProviderError(StrategyError):
    default_message = "Layanan AI tidak dapat membuat rencana strategi"


class PlanValidationError(AiProviderError):
    default_message = "Format rencana strategi dari AI tidak valid"


class PersistenceError(StrategyError):
    default_message = "Gagal menyimpan data"
