"""
Constant-product AMM state-transition engine
"""

__version__ = "0.1.0"
