"""
SubTrack - Source Package

A personal subscription tracker: a calendar of recurring payments,
monthly and yearly totals, category breakdowns, and optional
Gemini-assisted insights and smart add.

DESIGN PRINCIPLES:
1. AI suggests → Normalizer verifies → Store persists
2. Fail early, fail visibly
3. No silent corrections (amounts never get defaults)
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SubTrack Team"
