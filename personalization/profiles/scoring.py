"""
Profile completeness score (0-100).

Demographics 30, behavior 40, interests/affinities/preferences 30.
"""

from ..models.profile import UserProfile


def completeness_score(profile: UserProfile) -> int:
    demo = profile.demographics
    location = demo.location or {}
    score = 0
    if demo.age:
        score += 5
    if demo.gender:
        score += 5
    if location.get("city"):
        score += 5
    if location.get("country"):
        score += 5
    if profile.email:
        score += 10

    counters = profile.behavioral
    if counters.page_views > 10:
        score += 10
    if counters.sessions > 5:
        score += 10
    if counters.purchases > 0:
        score += 20

    if profile.interests:
        score += 10
    if profile.affinities:
        score += 10
    if profile.preferences:
        score += 10
    return min(score, 100)
