import threading
import time

import pytest

from stackfs import (
    CapacityExceeded,
    FloppyDisk,
    FloppySize,
    RamDisk,
    ThrottledFileSystem,
    ThrottleInterrupted,
    ThrottleLimits,
)
from stackfs.fileutils import discard_sink, read_bytes, write_bytes
from stackfs.throttle import sleep_time_ms

from conftest import SCENARIO_SIZE


@pytest.mark.parametrize(
    ("transferred", "max_rate", "elapsed_ms", "expected"),
    [
        (0, 100, 0, 0),
        (100, 100, 0, 1000),
        (100, 100, 400, 600),
        (100, 100, 2000, 0),
        (100, None, 0, 0),
        (500, 1000, 100, 400),
    ],
)
def test_sleep_time(transferred, max_rate, elapsed_ms, expected):
    assert sleep_time_ms(transferred, max_rate, elapsed_ms) == pytest.approx(expected)


def test_used_size_is_measured_on_construction(populated):
    throttled = ThrottledFileSystem(populated, ThrottleLimits(size_limit=128))
    assert throttled.used == SCENARIO_SIZE


def test_used_size_is_measured_on_open_when_inner_was_closed():
    inner = RamDisk()
    throttled = ThrottledFileSystem(inner, ThrottleLimits(size_limit=128))
    assert throttled.used is None
    throttled.open()
    assert throttled.used == 0


def test_exact_remaining_capacity_fits(ram_disk):
    write_bytes(ram_disk, "/existing.bin", b"e" * 30)
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(size_limit=128))
    write_bytes(throttled, "/fill.bin", b"f" * 98)
    assert throttled.used == 128
    with pytest.raises(CapacityExceeded):
        write_bytes(throttled, "/one-more.bin", b"x")


def test_refused_write_keeps_earlier_bytes(ram_disk):
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(size_limit=50))
    with throttled.open_write("/data.bin") as sink:
        sink.write(b"x" * 30)
        with pytest.raises(CapacityExceeded):
            sink.write(b"y" * 30)
    assert read_bytes(ram_disk, "/data.bin") == b"x" * 30
    assert throttled.used == 30


def test_overwrite_only_counts_the_difference(ram_disk):
    write_bytes(ram_disk, "/file.bin", b"a" * 50)
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(size_limit=128))
    write_bytes(throttled, "/file.bin", b"b" * 128)
    assert throttled.used == 128
    write_bytes(throttled, "/file.bin", b"c" * 30)
    assert throttled.used == 30


def test_deletions_return_capacity(populated):
    throttled = ThrottledFileSystem(populated, ThrottleLimits(size_limit=SCENARIO_SIZE))
    with pytest.raises(CapacityExceeded):
        write_bytes(throttled, "/new.txt", b"n")
    throttled.remove("/e.txt")
    assert throttled.used == SCENARIO_SIZE - 6
    throttled.rmdir("/def")
    assert throttled.used == SCENARIO_SIZE - 6 - 38
    write_bytes(throttled, "/new.txt", b"n" * 44)
    assert throttled.used == SCENARIO_SIZE


def test_reads_pass_through_unchanged(populated):
    throttled = ThrottledFileSystem(populated, ThrottleLimits(speed_limit=1_000_000))
    assert read_bytes(throttled, "/def/ghi/c.txt") == b"/def/ghi/c.txt"


def test_speed_limit_slows_transfers(ram_disk):
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(speed_limit=1000))
    started = time.monotonic()
    with throttled.open_write("/slow.bin") as sink:
        sink.write(b"a" * 200)
        sink.write(b"b" * 200)
    assert time.monotonic() - started >= 0.15
    assert ram_disk.size("/slow.bin") == 400


def test_interrupt_aborts_future_waits(ram_disk):
    write_bytes(ram_disk, "/data.bin", b"d" * 100)
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(speed_limit=10))
    with throttled.open_read("/data.bin") as source:
        assert source.read(10) == b"d" * 10
        throttled.interrupt()
        with pytest.raises(ThrottleInterrupted):
            source.read(10)


def test_interrupt_aborts_a_pending_wait(ram_disk):
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(speed_limit=1))
    timer = threading.Timer(0.05, throttled.interrupt)
    with throttled.open_write("/data.bin") as sink:
        sink.write(b"x" * 5)
        timer.start()
        started = time.monotonic()
        with pytest.raises(ThrottleInterrupted):
            sink.write(b"y")
        assert time.monotonic() - started < 2
    timer.join()
    assert read_bytes(ram_disk, "/data.bin") == b"x" * 5


def test_open_sinks_share_one_allowance(ram_disk):
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(size_limit=10))
    first = throttled.open_write("/first.bin")
    second = throttled.open_write("/second.bin")
    first.write(b"a" * 6)
    with pytest.raises(CapacityExceeded):
        second.write(b"b" * 6)
    second.write(b"b" * 4)
    first.close()
    second.close()
    assert throttled.used == 10
    assert read_bytes(ram_disk, "/second.bin") == b"b" * 4


def test_discarded_sink_gives_its_bytes_back(ram_disk):
    write_bytes(ram_disk, "/file.bin", b"a" * 20)
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(size_limit=50))
    sink = throttled.open_write("/file.bin")
    sink.write(b"b" * 40)
    assert throttled.used == 40
    discard_sink(sink)
    assert throttled.used == 20
    assert read_bytes(ram_disk, "/file.bin") == b"a" * 20


def test_streams_opened_after_an_interrupt_still_work(ram_disk):
    write_bytes(ram_disk, "/data.bin", b"d" * 10)
    throttled = ThrottledFileSystem(ram_disk, ThrottleLimits(speed_limit=1_000_000))
    throttled.interrupt()
    assert read_bytes(throttled, "/data.bin") == b"d" * 10


def test_floppy_disk_caps_a_host_directory(tmp_path):
    with FloppyDisk(tmp_path, FloppySize.F_360) as floppy:
        assert floppy.limits.size_limit == 360 * 1024
        assert floppy.used == 0
        write_bytes(floppy, "/boot.img", b"\x00" * (360 * 1024))
        with pytest.raises(CapacityExceeded):
            write_bytes(floppy, "/extra.txt", b"x")
    assert (tmp_path / "boot.img").stat().st_size == 360 * 1024


def test_floppy_disk_measures_existing_content(tmp_path):
    (tmp_path / "old.txt").write_bytes(b"o" * 100)
    with FloppyDisk(tmp_path) as floppy:
        assert floppy.used == 100
        assert floppy.limits.size_limit == FloppySize.F_720.value
