"""FollowupDetector unit tests."""

from src.domain.services.followup_detector import FollowupDetector


def test_generation_keywords_detected():
    detector = FollowupDetector()
    for query in ("fix the parser", "Add error handling", "please implement caching", "adds logging", "fixed?"):
        assert detector.needs_generation(query), query


def test_analysis_only_queries_not_detected():
    detector = FollowupDetector()
    for query in ("explain this function", "what does the address field hold", "review the module", ""):
        assert not detector.needs_generation(query), query


def test_cache_hits():
    detector = FollowupDetector()
    detector.clear_cache()
    detector.needs_generation("fix bug")
    detector.needs_generation("fix bug")
    info = detector.cache_info()
    assert info["hits"] >= 1
    assert info["size"] >= 1
