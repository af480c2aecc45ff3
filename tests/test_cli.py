import time

import pytest

from dnsstress.cli import build_arg_parser, config_from_args, main, run
from dnsstress.models import StressConfig


def test_missing_domain_exits_with_usage(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 1
    assert 'usage: dnsstress' in capsys.readouterr().err


def test_invalid_resolver_exits_before_dialing(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(['-r', '2001:4b98:dc2:45:216:3eff:fe4b:8c5b:53', 'example.com'])
    assert excinfo.value.code == 1
    assert 'Invalid resolver address' in capsys.readouterr().err


@pytest.mark.parametrize('resolver', ['127.0.0.1:²', '127.0.0.1:٥٣'])
def test_non_ascii_port_is_a_usage_error(resolver, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(['-r', resolver, 'example.com'])
    assert excinfo.value.code == 1
    assert 'invalid port' in capsys.readouterr().err


def test_go_style_flags():
    args = build_arg_parser().parse_args([
        '-concurrency', '10', '-r', '1.1.1.1', '-d', '500', '-t', '250',
        '-v', '-i', '-random', '-f', 'example.com', 'example.org.',
    ])
    config = config_from_args(args)

    assert config == StressConfig(
        domains=['example.com.', 'example.org.'],
        resolver='1.1.1.1:53',
        concurrency=10,
        display_interval=0.5,
        verbose=True,
        iterative=True,
        random_ids=True,
        flood=True,
        timeout=0.25,
    )


def test_defaults():
    config = config_from_args(build_arg_parser().parse_args(['example.com']))
    assert config.concurrency == 50
    assert config.resolver == '127.0.0.1:53'
    assert config.display_interval == 1.0
    assert not (config.verbose or config.iterative or config.random_ids or config.flood)


def test_run_reports_windows_and_totals(replying_resolver, console_output):
    console, buffer = console_output
    config = StressConfig(domains=['example.com.'], resolver=replying_resolver.address,
                          concurrency=4, display_interval=0.1, timeout=1.0)

    aggregator = run(config, console=console, wait=lambda: time.sleep(0.45))

    out = buffer.getvalue()
    assert 'Requests sent:' in out
    assert 'Total requests sent:' in out
    assert 'Errors' not in out
    assert aggregator.windows
    total = aggregator.last_total
    assert total.sent > 0
    assert total.errors == 0
    assert total.sent == replying_resolver.received


def run_against(resolver_address, flood, console):
    config = StressConfig(domains=['example.com.'], resolver=resolver_address, concurrency=2,
                          display_interval=0.1, timeout=0.05, flood=flood)
    return run(config, console=console, wait=lambda: time.sleep(0.3)).last_total


def test_silent_resolver_wait_versus_flood(silent_resolver, console_output):
    console, buffer = console_output

    waited = run_against(silent_resolver.address, False, console)
    flooded = run_against(silent_resolver.address, True, console)

    assert waited.sent > 0
    assert waited.errors == waited.sent
    assert waited.error_percentage == 100
    assert flooded.errors == 0
    assert flooded.sent > waited.sent
    assert '(100%)' in buffer.getvalue()


def sent_in(resolver_address, concurrency, console, duration=0.5):
    config = StressConfig(domains=['example.com.'], resolver=resolver_address,
                          concurrency=concurrency, display_interval=0.1, timeout=1.0)
    return run(config, console=console, wait=lambda: time.sleep(duration)).last_total


def test_send_rate_scales_with_workers(make_resolver, console_output):
    console, _ = console_output
    # A fixed reply delay makes every exchange take about the same time
    resolver = make_resolver(delay=0.02)

    single = sent_in(resolver.address, 1, console)
    several = sent_in(resolver.address, 4, console)

    assert single.sent > 0
    assert single.errors == several.errors == 0
    assert 4 * single.sent * 0.5 <= several.sent <= 4 * single.sent * 1.5
