"""
Translation from decision-function expressions to Z3 terms.
"""

from .translation_context import TranslationContext
from .expr_translator import ExprTranslator

__all__ = [
    "TranslationContext",
    "ExprTranslator",
]
