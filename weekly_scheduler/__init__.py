"""Weekly recurring appointment scheduler"""

__version__ = "1.0.0"
