"""Tests for the command-line interface.

Taichi is already initialized by the session fixture, so init_taichi is
replaced with a no-op; a second ti.init() would invalidate existing fields.
"""

import json
import logging

import pytest


@pytest.fixture
def no_reinit(monkeypatch):
    from src.pathtracer import cli

    calls = []
    monkeypatch.setattr(cli, "init_taichi", lambda config: calls.append(config))
    return calls


class TestParser:
    """Tests for build_parser and config_from_args."""

    def test_defaults(self):
        from src.pathtracer.cli import build_parser, config_from_args

        args = build_parser().parse_args(["out.ppm"])
        config = config_from_args(args)

        assert str(args.output) == "out.ppm"
        assert (config.width, config.height) == (400, 200)
        assert config.samples == 100
        assert config.look_from == (13.0, 2.0, 3.0)
        assert config.dist_to_focus is None
        assert args.scene is None
        assert not args.verbose and not args.quiet

    def test_options(self):
        from src.pathtracer.cli import build_parser, config_from_args

        args = build_parser().parse_args(
            [
                "out.png",
                "-d", "64x32",
                "-s", "8",
                "-g", "2.2",
                "-D", "3",
                "--look-from=-4,1,0",
                "-t", "0,1,0",
                "-a", "0.0",
                "-x", "5",
                "--vfov", "40",
                "--seed", "9",
                "--rows-per-batch", "4",
            ]
        )
        config = config_from_args(args)

        assert (config.width, config.height) == (64, 32)
        assert config.samples == 8
        assert config.gamma == 2.2
        assert config.ball_density == 3
        assert config.look_from == (-4.0, 1.0, 0.0)
        assert config.look_at == (0.0, 1.0, 0.0)
        assert config.aperture == 0.0
        assert config.focus_distance == 5.0
        assert config.vfov == 40.0
        assert config.seed == 9
        assert config.rows_per_batch == 4

    @pytest.mark.parametrize("argv", [["out.ppm", "-d", "64"], ["out.ppm", "-F", "1,2"]])
    def test_malformed_values_exit(self, argv):
        from src.pathtracer.cli import build_parser

        with pytest.raises(SystemExit):
            build_parser().parse_args(argv)

    def test_verbose_and_quiet_are_exclusive(self):
        from src.pathtracer.cli import build_parser

        with pytest.raises(SystemExit):
            build_parser().parse_args(["out.ppm", "-v", "-q"])

    def test_out_of_range_value_rejected(self):
        from src.pathtracer.cli import build_parser, config_from_args

        args = build_parser().parse_args(["out.ppm", "-s", "0"])
        with pytest.raises(ValueError, match="samples"):
            config_from_args(args)


class TestMain:
    """Tests for main()."""

    def test_renders_ball_field(self, tmp_path, no_reinit):
        from src.pathtracer.cli import main
        from src.pathtracer.output.ppm import read_ppm

        output = tmp_path / "balls.ppm"
        code = main([str(output), "-d", "8x4", "-s", "1", "-D", "1", "--seed", "3", "-q"])

        assert code == 0
        assert len(no_reinit) == 1
        assert no_reinit[0].seed == 3
        assert read_ppm(output).shape == (4, 8, 3)

    def test_scene_round_trip(self, tmp_path, no_reinit):
        from src.pathtracer.cli import main

        saved = tmp_path / "scene.json"
        argv = [str(tmp_path / "a.png"), "-d", "4x2", "-s", "1", "-D", "0", "-q"]
        code = main([*argv, "--save-scene", str(saved)])
        assert code == 0
        data = json.loads(saved.read_text())
        assert len(data["spheres"]) == 4

        code = main([str(tmp_path / "b.png"), "-d", "4x2", "-s", "1", "--scene", str(saved), "-q"])
        assert code == 0
        assert (tmp_path / "b.png").exists()

    def test_invalid_config_returns_error(self, tmp_path, no_reinit, caplog):
        from src.pathtracer.cli import main

        with caplog.at_level(logging.ERROR, logger="src.pathtracer"):
            code = main([str(tmp_path / "x.ppm"), "--vfov", "0"])

        assert code == 1
        assert no_reinit == []
        assert not (tmp_path / "x.ppm").exists()
        assert "vfov" in caplog.text

    def test_missing_scene_file_returns_error(self, tmp_path, no_reinit):
        from src.pathtracer.cli import main

        code = main(
            [str(tmp_path / "x.ppm"), "-d", "4x2", "--scene", str(tmp_path / "missing.json"), "-q"]
        )

        assert code == 1

    def test_malformed_scene_file_returns_error(self, tmp_path, no_reinit, caplog):
        from src.pathtracer.cli import main

        scene = tmp_path / "bad.json"
        scene.write_text(json.dumps({"materials": ["lambertian"], "spheres": []}))

        with caplog.at_level(logging.ERROR, logger="src.pathtracer"):
            code = main([str(tmp_path / "x.ppm"), "-d", "4x2", "--scene", str(scene), "-q"])

        assert code == 1
        assert not (tmp_path / "x.ppm").exists()
        assert "must be an object" in caplog.text

    def test_seeded_renders_are_deterministic_in_scene(self, tmp_path, no_reinit):
        from src.pathtracer.cli import main

        first = tmp_path / "first.json"
        second = tmp_path / "second.json"
        for path in (first, second):
            argv = [str(tmp_path / "img.ppm"), "-d", "2x2", "-s", "1", "-D", "2", "--seed", "5"]
            assert main([*argv, "--save-scene", str(path), "-q"]) == 0

        assert json.loads(first.read_text()) == json.loads(second.read_text())


class TestLogging:
    """Tests for setup_logging."""

    def test_setup_logging_sets_level_once(self):
        from src.pathtracer.cli import setup_logging

        setup_logging(logging.DEBUG)
        setup_logging(logging.WARNING)
        logger = logging.getLogger("src.pathtracer")

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert all(h.level == logging.WARNING for h in logger.handlers)
