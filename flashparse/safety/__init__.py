"""
flashparse.safety

Regex certification: static structure checks and adversarial execution.
"""

from .validator import RegexSafetyValidator, security_advice

__all__ = ["RegexSafetyValidator", "security_advice"]
