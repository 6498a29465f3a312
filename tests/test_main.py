from movieplayer.director.parser import MovieParser
from movieplayer.main import DEMO_MOVIE, ConsoleRenderer, build_parser, main
from movieplayer.playback.cursor import NARRATION
from movieplayer.playback.presentation import project_frame

from test_presentation import snapshot_at


def test_list_voices_exits_cleanly():
    assert main(["--list-voices"]) == 0


def test_invalid_movie_file_is_reported(tmp_path):
    path = tmp_path / "rota.json"
    path.write_text('{"title": "Rota", "scenes": []}', encoding="utf-8")
    assert main([str(path)]) == 1


def test_demo_movie_is_valid():
    movie = MovieParser().parse(DEMO_MOVIE)
    assert movie.scene_count == 3
    assert movie.total_lines == 3


def test_mode_option_accepts_only_known_modes():
    args = build_parser().parse_args(["--mode", "on-device", "--no-audio"])
    assert args.mode == "on-device"
    assert args.no_audio


def test_renderer_skips_repeated_frames(capsys):
    movie = MovieParser().parse(DEMO_MOVIE)
    renderer = ConsoleRenderer(movie)
    snapshot = snapshot_at(movie, 0, NARRATION)

    renderer(snapshot)
    renderer(snapshot)

    output = capsys.readouterr().out
    assert output.count("La tormenta golpea") == 1
    assert project_frame(movie, snapshot).subtitle.startswith("La tormenta")
