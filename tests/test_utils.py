import pytest

from dnsstress.errors import InvalidAddress
from dnsstress.utils import (
    error_percentage,
    normalize_domain,
    parse_ip_port,
    per_second,
    prepare_headers,
    round_half_away,
    split_host_port,
)


@pytest.mark.parametrize('value, expected', [
    (2.5, 3),
    (2.4, 2),
    (-2.5, -3),
    (-2.4, -2),
    (0.0, 0),
    (0.5, 1),
    (1234.49, 1234),
])
def test_round_half_away(value, expected):
    assert round_half_away(value) == expected


@pytest.mark.parametrize('sent, errors, seconds', [
    (100, 0, 1.0),
    (100, 25, 2.0),
    (7, 7, 0.5),
    (5, 0, 2.0),
    (0, 0, 1.0),
])
def test_reply_rate_is_rounded_and_non_negative(sent, errors, seconds):
    rate = per_second(sent - errors, seconds)
    assert rate == round_half_away((sent - errors) / seconds)
    assert rate >= 0


def test_per_second_without_elapsed_time():
    assert per_second(10, 0) == 0


def test_error_percentage_without_traffic():
    assert error_percentage(0, 0) == 0
    assert error_percentage(1, 0) == 0


def test_error_percentage():
    assert error_percentage(1, 3) == 33
    assert error_percentage(1, 8) == 13
    assert error_percentage(5, 5) == 100


def test_error_percentage_with_more_errors_than_sent():
    assert error_percentage(3, 2) == 150


@pytest.mark.parametrize('address, expected', [
    ('127.0.0.1:53', '127.0.0.1:53'),
    ('1.1.1.1:5353', '1.1.1.1:5353'),
    ('127.0.0.1', '127.0.0.1:53'),
    ('2001:4b98:dc2:45:216:3eff:fe4b:8c5b', '[2001:4b98:dc2:45:216:3eff:fe4b:8c5b]:53'),
    ('[2001:4b98:dc2:45:216:3eff:fe4b:8c5b]:53', '[2001:4b98:dc2:45:216:3eff:fe4b:8c5b]:53'),
    ('::1', '[::1]:53'),
    ('localhost:5300', 'localhost:5300'),
])
def test_parse_ip_port(address, expected):
    assert parse_ip_port(address) == expected


@pytest.mark.parametrize('address', [
    '127.0.0.1:53',
    '127.0.0.1',
    '2001:4b98:dc2:45:216:3eff:fe4b:8c5b',
    '[2001:4b98:dc2:45:216:3eff:fe4b:8c5b]:53',
    '2001:0db8:0000::1',
])
def test_parse_ip_port_is_idempotent(address):
    once = parse_ip_port(address)
    assert parse_ip_port(once) == once


@pytest.mark.parametrize('address', [
    '2001:4b98:dc2:45:216:3eff:fe4b:8c5b:53',
    'localhost',
    '127.0.0.1:',
    '127.0.0.1:dns',
    '127.0.0.1:70000',
    '[::1]',
    '[::1:53',
    ':53',
    '127.0.0.1:²',
    '127.0.0.1:٥٣',
])
def test_parse_ip_port_rejects_malformed_addresses(address):
    with pytest.raises(InvalidAddress):
        parse_ip_port(address)


def test_invalid_address_is_a_value_error():
    with pytest.raises(ValueError):
        parse_ip_port('2001:4b98:dc2:45:216:3eff:fe4b:8c5b:53')


def test_split_host_port():
    assert split_host_port('[::1]:5353') == ('::1', '5353')
    assert split_host_port('10.0.0.1:53') == ('10.0.0.1', '53')


@pytest.mark.parametrize('name, expected', [
    ('example.com', 'example.com.'),
    ('example.com.', 'example.com.'),
    (' example.org ', 'example.org.'),
])
def test_normalize_domain(name, expected):
    assert normalize_domain(name) == expected


def test_prepare_headers():
    headers = prepare_headers(['Authorization=Bearer a=b', 'X-Scope-OrgID=team', 'broken'])
    assert headers == {'Authorization': 'Bearer a=b', 'X-Scope-OrgID': 'team'}
    assert prepare_headers(None) == {}
