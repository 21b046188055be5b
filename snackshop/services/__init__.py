# Services Module
from .money import to_decimal, round_money, format_money, to_float

__all__ = ["to_decimal", "round_money", "format_money", "to_float"]
