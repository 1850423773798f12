# tests/test_timegrid.py

from datetime import date

import pytest

from barberbook.core.timegrid import day_of_week, generate_slots, overlaps, to_clock, to_minute
from barberbook.errors import ValidationError


def test_to_minute_and_back():
    assert to_minute("09:30") == 570
    assert to_minute("0:05") == 5
    assert to_clock(570) == "09:30"
    assert to_clock(0) == "00:00"
    assert to_clock(1440) == "24:00"


@pytest.mark.parametrize("bad", ["24:00", "9:60", "0930", "", "ab:cd"])
def test_to_minute_rejects_malformed(bad):
    with pytest.raises(ValidationError):
        to_minute(bad)


def test_to_clock_rejects_out_of_range():
    with pytest.raises(ValidationError):
        to_clock(-1)
    with pytest.raises(ValidationError):
        to_clock(1441)


def test_generate_slots_respects_close():
    starts = generate_slots(540, 660, 30, 15)
    assert starts == [540, 555, 570, 585, 600, 615, 630]
    assert all(540 <= s and s + 30 <= 660 for s in starts)


def test_generate_slots_window_shorter_than_duration():
    assert generate_slots(540, 560, 30, 15) == []


def test_generate_slots_is_restartable():
    assert generate_slots(540, 720, 45, 30) == generate_slots(540, 720, 45, 30)


def test_generate_slots_rejects_bad_step_and_duration():
    with pytest.raises(ValidationError):
        generate_slots(540, 600, 30, 0)
    with pytest.raises(ValidationError):
        generate_slots(540, 600, 0, 15)


def test_overlaps_is_half_open():
    assert overlaps(540, 570, 560, 590)
    assert not overlaps(540, 570, 570, 600)
    assert not overlaps(570, 600, 540, 570)
    assert overlaps(540, 600, 550, 560)


def test_day_of_week_starts_on_sunday():
    assert day_of_week(date(2025, 6, 22)) == 0  # Sunday
    assert day_of_week(date(2025, 6, 23)) == 1  # Monday
    assert day_of_week(date(2025, 6, 28)) == 6  # Saturday
