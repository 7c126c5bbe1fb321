"""Tests for answer resolution."""

from quizbot.handlers import (
    AnswerResolver,
    match_artist_title,
    match_substring,
    normalize_text,
)
from quizbot.models import Provenance, Question, question_signature


def _sig(q: Question) -> str:
    return question_signature(q.title, q.text, q.options)


class TestSignature:

    def test_independent_of_option_order(self) -> None:
        a = question_signature('T', 'who?', ['b', 'a', 'c'])
        b = question_signature('T', 'who?', ['c', 'b', 'a'])
        assert a == b
        assert a == 'T::who?::a|b|c'

    def test_does_not_reorder_options(self) -> None:
        options = ['z', 'a']
        question_signature('T', 'who?', options)
        assert options == ['z', 'a']

    def test_title_and_text_distinguish(self) -> None:
        assert question_signature('A', 'x', ['o']) != question_signature('B', 'x', ['o'])
        assert question_signature('A', 'x', ['o']) != question_signature('A', 'y', ['o'])


class TestNormalizeText:

    def test_strips_punctuation_and_whitespace(self) -> None:
        assert normalize_text('  Hello,   World! ') == 'hello world'

    def test_empty(self) -> None:
        assert normalize_text('') == ''
        assert normalize_text(None) == ''


class TestSubstring:

    def test_first_option_in_order_wins(self) -> None:
        assert match_substring('Alice and Bob live', ['Bob', 'Alice']) == 'Bob'
        assert match_substring('Alice and Bob live', ['Alice', 'Bob']) == 'Alice'

    def test_case_insensitive(self) -> None:
        assert match_substring('KIDUM - Nitwa', ['kidum', 'other']) == 'kidum'

    def test_no_match(self) -> None:
        assert match_substring('XYZ', ['Alpha', 'Beta']) is None

    def test_empty_option_never_matches(self) -> None:
        assert match_substring('XYZ', ['', 'A']) is None
        assert match_substring('A song', ['', 'A song']) == 'A song'


class TestArtistTitle:

    def test_artist_question(self) -> None:
        answer = match_artist_title('B.o.b - Airplanes', ['Bob', 'Eminem'], 'Who is the artist?')
        assert answer == 'Bob'

    def test_title_question(self) -> None:
        answer = match_artist_title('Kidum - Haturudi', ['Amahoro', 'Haturudi!'], 'Ni iyihe ndirimbo?')
        assert answer == 'Haturudi!'

    def test_french_keywords(self) -> None:
        answer = match_artist_title('Stromae - Papaoutai', ['Stromae', 'Angele'], 'Quel chanteur ?')
        assert answer == 'Stromae'

    def test_artist_checked_before_title(self) -> None:
        answer = match_artist_title('Same - Same', ['same'], 'artist or song title?')
        assert answer == 'same'

    def test_falls_back_to_title_when_artist_has_no_match(self) -> None:
        answer = match_artist_title('Nobody - Hit', ['Hit', 'Miss'], 'artist of this song')
        assert answer == 'Hit'

    def test_requires_separator(self) -> None:
        for title in ['Bob Song A', 'Bob-Song A', 'Bob -Song', '', 'Bob – Song']:
            assert match_artist_title(title, ['Bob', 'Song A'], 'who is the artist / song title') is None

    def test_no_keywords(self) -> None:
        assert match_artist_title('Bob - Song', ['Bob'], 'guess') is None

    def test_only_first_two_segments(self) -> None:
        answer = match_artist_title('Bob - Song - Remix', ['Song', 'Remix'], 'song title?')
        assert answer == 'Song'

    def test_custom_vocabulary(self) -> None:
        answer = match_artist_title('Bob - Song', ['Bob'], 'wer ist der kunstler', artist_keywords=['kunstler'])
        assert answer == 'Bob'


class TestAnswerResolver:

    def test_artist_scenario_resolves_bob(self, cache, artist_question) -> None:
        result = AnswerResolver(cache).resolve(artist_question)
        # The option is embedded verbatim in the title, so the substring rule
        # decides before the artist/title split is attempted.
        assert result.answer == 'Bob'
        assert result.provenance is Provenance.SUBSTRING

    def test_artist_title_provenance(self, cache) -> None:
        q = Question(text='who is the artist', title='B.o.b - Song A', options=('Alice', 'Bob'))
        result = AnswerResolver(cache).resolve(q)
        assert result.answer == 'Bob'
        assert result.provenance is Provenance.ARTIST_TITLE

    def test_cache_short_circuits_heuristics(self, cache, artist_question) -> None:
        cache.store(_sig(artist_question), 'Alice')
        result = AnswerResolver(cache).resolve(artist_question)
        assert result.answer == 'Alice'
        assert result.provenance is Provenance.CACHE

    def test_cache_hit_regardless_of_option_order(self, cache, artist_question) -> None:
        cache.store(_sig(artist_question), 'Alice')
        reordered = artist_question.model_copy(update={'options': ('Alice', 'Bob')})
        assert AnswerResolver(cache).resolve(reordered).provenance is Provenance.CACHE

    def test_stale_cache_entry_ignored(self, cache, artist_question) -> None:
        cache.store(_sig(artist_question), 'Carol')
        result = AnswerResolver(cache).resolve(artist_question)
        assert result.answer == 'Bob'
        assert result.provenance is Provenance.SUBSTRING

    def test_empty_option_escalates(self, cache) -> None:
        q = Question(text='which one?', title='XYZ', options=('', 'A'))
        result = AnswerResolver(cache).resolve(q)
        assert result.answer is None
        assert result.provenance is Provenance.NONE

    def test_undecided(self, cache, unknown_question) -> None:
        result = AnswerResolver(cache).resolve(unknown_question)
        assert result.answer is None
        assert result.provenance is Provenance.NONE
        assert not result.decided
