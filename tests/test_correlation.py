"""Stream ↔ player correlation policies."""

from fakes import session, stream

from playmix.lib.correlation import (
    correlate_by_process,
    get_policy,
    no_correlation,
    process_key,
)


def test_process_key():
    assert process_key("Brave-Browser") == "brave"
    assert process_key("chromium-bin") == "chromium"
    assert process_key(" Spotify ") == "spotify"


def test_one_stream_one_player_merged():
    result = correlate_by_process([stream(10, "spotify")], [session("spotify")])

    assert len(result) == 1
    assert result[0].stream.index == 10
    assert result[0].session.instance == "spotify"
    assert not result[0].ambiguous


def test_stream_without_player_stays_plain():
    result = correlate_by_process([stream(5, "Discord")], [])

    assert len(result) == 1
    assert result[0].session is None
    assert not result[0].ambiguous


def test_shared_instance_marks_every_stream_ambiguous():
    tabs = [stream(20, "chromium"), stream(21, "chromium"), stream(22, "chromium")]
    players = [session("chromium.instance8123", status="Playing", art="https://example.com/a.jpg")]

    result = correlate_by_process(tabs, players)

    assert [c.stream.index for c in result] == [20, 21, 22]
    assert all(c.ambiguous for c in result)
    assert all(c.session.instance == "chromium.instance8123" for c in result)


def test_one_player_per_stream_paired_in_order():
    streams = [stream(31, "firefox"), stream(30, "firefox")]
    players = [session("firefox.instance_1_20"), session("firefox.instance_1_10")]

    result = correlate_by_process(streams, players)

    assert [(c.stream.index, c.session.instance) for c in result] == [
        (30, "firefox.instance_1_10"),
        (31, "firefox.instance_1_20"),
    ]
    assert not any(c.ambiguous for c in result)


def test_more_players_than_streams_is_ambiguous():
    players = [session("chromium.instanceA", art="https://example.com/a.jpg"),
               session("chromium.instanceB", art="https://example.com/b.jpg")]

    result = correlate_by_process([stream(30, "chromium")], players)

    assert len(result) == 1
    assert result[0].stream.index == 30
    assert result[0].ambiguous
    assert len(result[0].sessions) == 2


def test_players_without_streams_collapse_into_one_entry():
    players = [session("chromium.instanceA"), session("chromium.instanceB", status="Playing")]

    result = correlate_by_process([], players)

    assert len(result) == 1
    assert result[0].ambiguous
    assert result[0].session.instance == "chromium.instanceB"
    assert len(result[0].sessions) == 2


def test_matches_on_application_name():
    result = correlate_by_process([stream(7, "spotify-launcher", app_name="Spotify")], [session("spotify")])
    assert result[0].session is not None


def test_streams_first_then_player_only_entries():
    result = correlate_by_process(
        [stream(9, "Discord"), stream(3, "spotify")],
        [session("spotify"), session("vlc")],
    )
    assert [(c.stream.index if c.stream else None, c.session.instance if c.session else None)
            for c in result] == [(3, "spotify"), (9, None), (None, "vlc")]


def test_no_correlation_keeps_everything_separate():
    result = no_correlation([stream(10, "spotify")], [session("spotify")])

    assert len(result) == 2
    assert result[0].session is None
    assert result[1].stream is None


def test_get_policy():
    assert get_policy("none") is no_correlation
    assert get_policy("process") is correlate_by_process
    assert get_policy("bogus") is correlate_by_process
