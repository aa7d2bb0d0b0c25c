"""
taskswarm - multi-agent task orchestration engine.
"""

__version__ = "0.1.0"
__logo__ = "🐝"
