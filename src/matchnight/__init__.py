"""
MatchNight: questionnaire-driven matching for a live social event.

Participants answer a fixed questionnaire one question at a time; an operator
then pairs the two participant groups by answer agreement and reveals the
pairs grouped by category.
"""

__version__ = "1.0.0"
