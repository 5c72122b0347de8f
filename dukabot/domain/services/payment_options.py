# dukabot/domain/services/payment_options.py
"""
Mobile-money payment choices offered after a delivery quote.

Built from settings in a fixed order: Lipa Namba till, Vodacom Lipa Namba
till, Vodacom P2P number, then any extra ``PAYMENT_OPTIONS`` entries
(ids ``PAY_1``, ``PAY_2``, ...).  A till's registered name, when set, is
appended to its number as ``"<number> • <name>"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

PAY_PREFIX = "PAY_"


@dataclass(frozen=True)
class PaymentOption:
    id: str
    label: str
    value: str


def _with_name(number: str, name: str) -> str:
    return f"{number} • {name}" if name else number


def payment_options_from_settings(cfg=None) -> list[PaymentOption]:
    if cfg is None:
        from dukabot.core.config import settings as cfg

    options: list[PaymentOption] = []
    if cfg.LIPA_NAMBA_TILL:
        options.append(PaymentOption("PAY_MIXX", "MIXXBYYAS LIPANAMB", _with_name(cfg.LIPA_NAMBA_TILL, cfg.LIPA_NAMBA_NAME)))
    if cfg.VODA_LNM_TILL:
        options.append(PaymentOption("PAY_VODA_LNM", "VODALIPANMBA", _with_name(cfg.VODA_LNM_TILL, cfg.VODA_LNM_NAME)))
    if cfg.VODA_P2P_MSISDN:
        options.append(PaymentOption("PAY_VODA_P2P", "Voda P2P", _with_name(cfg.VODA_P2P_MSISDN, cfg.VODA_P2P_NAME)))
    for i, extra in enumerate(cfg.PAYMENT_OPTIONS, start=1):
        if extra.label and extra.number:
            options.append(PaymentOption(f"{PAY_PREFIX}{i}", extra.label, extra.number))
    return options


def find_payment_option(options: Sequence[PaymentOption], option_id: str) -> Optional[PaymentOption]:
    wanted = (option_id or "").strip().upper()
    return next((o for o in options if o.id == wanted), None)
