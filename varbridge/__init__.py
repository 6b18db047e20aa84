"""
varbridge - remote control bridge for automation host variables
"""

__version__ = "0.1.0"
__logo__ = "🔌"
