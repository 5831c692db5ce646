import ipaddress

import pytest

from probekit.ping import PingMethods, PingResults, PingStatus


def test_insert_records_status_and_rtt():
    results = PingResults()
    results.insert("192.0.2.1", PingStatus.UP, 0.01)
    results.insert("192.0.2.1", PingStatus.DOWN, None)
    assert results.get_ping_status("192.0.2.1") == [PingStatus.UP, PingStatus.DOWN]
    assert results.get_rtts(ipaddress.ip_address("192.0.2.1")) == [0.01]


def test_unknown_address_returns_none():
    results = PingResults()
    assert results.get_ping_status("192.0.2.9") is None
    assert results.get_rtts("192.0.2.9") is None


def test_rtt_absent_when_never_given():
    results = PingResults()
    results.insert("2001:db8::1", PingStatus.ERROR)
    assert results.get_ping_status("2001:db8::1") == [PingStatus.ERROR]
    assert results.get_rtts("2001:db8::1") is None


def test_enrichment_average_and_alive():
    results = PingResults()
    results.insert("192.0.2.1", PingStatus.UP, 0.01)
    results.insert("192.0.2.1", PingStatus.UP, 0.02)
    results.insert("192.0.2.2", PingStatus.DOWN, None)
    results.enrichment()
    assert results.avg_rtt == pytest.approx(0.015)
    assert results.alive_hosts == 1


def test_enrichment_without_rtts():
    results = PingResults()
    results.insert("192.0.2.2", PingStatus.DOWN)
    results.enrichment()
    assert results.avg_rtt is None
    assert results.alive_hosts == 0


def test_host_counted_once_despite_many_ups():
    results = PingResults()
    for _ in range(4):
        results.insert("192.0.2.3", PingStatus.UP, 0.001)
    results.enrichment()
    assert results.alive_hosts == 1


def test_str_contains_rows_and_summary():
    results = PingResults()
    results.insert("192.0.2.1", PingStatus.UP, None)
    results.insert("192.0.2.1", PingStatus.DOWN, None)
    results.enrichment()
    text = str(results)
    assert "Ping Results" in text
    assert "up|down" in text
    assert "avg rtt: 0.0ms" in text
    assert "alive hosts: 1" in text


def test_str_orders_ipv4_before_ipv6():
    results = PingResults()
    results.insert("2001:db8::1", PingStatus.DOWN)
    results.insert("192.0.2.20", PingStatus.DOWN)
    results.insert("192.0.2.3", PingStatus.DOWN)
    text = str(results)
    assert text.index("192.0.2.3 ") < text.index("192.0.2.20") < text.index("2001:db8::1")


def test_str_lines_have_equal_width():
    results = PingResults()
    results.insert("192.0.2.1", PingStatus.UP, 0.002)
    results.enrichment()
    widths = {len(line) for line in str(results).splitlines()}
    assert len(widths) == 1


def test_status_values():
    assert [s.value for s in PingStatus] == ["up", "down", "error"]
    assert PingMethods("icmp") is PingMethods.ICMP


def test_invalid_address_rejected():
    with pytest.raises(ValueError):
        PingResults().insert("not-an-address", PingStatus.UP)