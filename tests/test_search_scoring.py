import unittest
from datetime import datetime, timedelta, timezone

from engine.models import Track
from engine.search_scoring import (
    dedupe_tracks,
    duration_band_points,
    keyword_points,
    log_popularity,
    normalize_text,
    normalized_popularity,
    rank_tracks,
    recency_points,
    score_track,
    search_words,
    top_tracks,
    unique_by_id,
)

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _track(track_id, *, title="Song", artist="Artist", provider="youtube", duration=200, popularity=1000,
           published_at="2020-01-01T00:00:00Z", genre=None):
    return Track(
        id=track_id,
        title=title,
        artist=artist,
        duration=duration,
        thumbnail="",
        published_at=published_at,
        popularity=popularity,
        provider=provider,
        genre=genre,
    )


class SearchScoringTests(unittest.TestCase):
    def test_normalize_text_lowercases_and_collapses_whitespace(self):
        self.assertEqual(normalize_text("  Late   NIGHT\tDrive "), "late night drive")
        self.assertEqual(normalize_text(None), "")

    def test_search_words_keeps_words_of_three_or_more_chars(self):
        self.assertEqual(search_words("a lo-fi beat for me"), ["lo-fi", "beat", "for"])

    def test_log_popularity_is_clamped(self):
        self.assertEqual(log_popularity(0), 0.0)
        self.assertAlmostEqual(log_popularity(999, offset=3.0), 0.0)
        self.assertEqual(log_popularity(10**12, cap=5.0), 5.0)
        self.assertEqual(log_popularity("not a number"), 0.0)

    def test_normalized_popularity_uses_provider_ceiling(self):
        self.assertEqual(normalized_popularity(100, "spotify"), 10.0)
        self.assertEqual(normalized_popularity(0, "youtube"), 0.0)
        self.assertLess(normalized_popularity(100, "youtube"), normalized_popularity(100, "soundcloud"))

    def test_duration_bands_first_match_wins(self):
        bands = ((180, 240, 5.0), (120, 360, 4.0))
        self.assertEqual(duration_band_points(200, bands), 5.0)
        self.assertEqual(duration_band_points(130, bands), 4.0)
        self.assertEqual(duration_band_points(50, bands, default=-1.0), -1.0)

    def test_recency_points(self):
        recent = (NOW - timedelta(days=10)).strftime("%Y-%m-%dT%H:%M:%SZ")
        self.assertEqual(recency_points(recent, 2.0, now=NOW), 2.0)
        self.assertEqual(recency_points("2019-01-01T00:00:00Z", 2.0, now=NOW), 0.0)
        self.assertEqual(recency_points("", 2.0, now=NOW), 0.0)

    def test_keyword_points_cap(self):
        self.assertEqual(keyword_points("Chill Study Beats", ("chill", "study", "beats"), 2.0, cap=4.0), 4.0)
        self.assertEqual(keyword_points("Chill Study Beats", ("rock",), 2.0), 0)

    def test_top_tracks_is_stable_and_drops_scores(self):
        a, b, c = _track("a"), _track("b"), _track("c")
        ranked = top_tracks([(1.0, a), (3.0, b), (1.0, c)], 2)
        self.assertEqual(ranked, [b, a])

    def test_unique_by_id_keeps_first(self):
        first = _track("x", title="First")
        second = _track("x", title="Second")
        self.assertEqual(unique_by_id([first, second, _track("y")])[0].title, "First")
        self.assertEqual(len(unique_by_id([first, second, _track("y")])), 2)

    def test_dedupe_is_case_insensitive_and_first_wins(self):
        spotify = _track("s1", title="Midnight City", artist="M83", provider="spotify", popularity=10)
        youtube = _track("y1", title="midnight city", artist="m83", provider="youtube", popularity=10**8)
        unique = dedupe_tracks([spotify, youtube, _track("y2", title="Other")])
        self.assertEqual([track.id for track in unique], ["s1", "y2"])

    def test_score_prefers_title_match_and_provider(self):
        plain = _track("a", title="Something Else", provider="youtube")
        matching = _track("b", title="Chill Study Mix", provider="youtube")
        self.assertGreater(score_track(matching, "chill study", now=NOW), score_track(plain, "chill study", now=NOW))

        spotify = _track("c", provider="spotify", popularity=0)
        youtube = _track("d", provider="youtube", popularity=0)
        self.assertGreater(score_track(spotify, "x", now=NOW), score_track(youtube, "x", now=NOW))

    def test_score_penalizes_very_long_tracks(self):
        normal = _track("a", duration=240)
        long_one = _track("b", duration=1500)
        self.assertAlmostEqual(score_track(normal, "x", now=NOW) - score_track(long_one, "x", now=NOW), 5.0)

    def test_score_rewards_genre_mentioned_in_input(self):
        tagged = _track("a", provider="soundcloud", genre="Jazz")
        untagged = _track("b", provider="soundcloud")
        self.assertAlmostEqual(score_track(tagged, "late jazz", now=NOW) - score_track(untagged, "late jazz", now=NOW), 4.0)

    def test_rank_tracks_is_bounded_and_deterministic(self):
        tracks = [_track(str(i), title=f"Song {i}", popularity=i * 1000) for i in range(25)]
        first = rank_tracks(tracks, "song", limit=10, now=NOW)
        second = rank_tracks(tracks, "song", limit=10, now=NOW)
        self.assertEqual(len(first), 10)
        self.assertEqual(first, second)
        self.assertEqual(first[0].id, "24")


if __name__ == "__main__":
    unittest.main()
