from county_cases.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["run"])
    assert args.command == "run"
    assert args.config == "config/settings.yml"
    assert args.overlay_config is None
    assert args.no_notify is False
    assert args.port is None


def test_parse_args_serve_options():
    args = parse_args(["serve", "--port", "9000", "--run-now", "--overlay-config", "config/live.yml"])
    assert args.port == 9000
    assert args.run_now is True
    assert args.overlay_config == "config/live.yml"
