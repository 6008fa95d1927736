"""
twbuild - Build orchestrator for the TON wallet web app and browser extensions.
"""

__version__ = "0.1.0"
