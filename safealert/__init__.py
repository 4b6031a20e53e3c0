"""
SafeAlert - community incident reporting core.

Geo-tagged safety reports are moderated (pending → approved/rejected) and
approved reports are surfaced to nearby devices through a polling engine
and a one-shot proximity fan-out.
"""

__version__ = "0.1.0"
