import hashlib
import random
from datetime import datetime, timezone

from mcheck.records import (
    INSERT_FILLER_TOKEN,
    UPDATE_FILLER_TOKEN,
    Brand,
    Robot,
    Statistics,
    filler,
    placeholder_sku,
    robot_name,
)


class TestStatistics:
    def test_battery_tracks_tasked(self):
        rng = random.Random(7)
        for _ in range(1000):
            stats = Statistics.draw(rng)
            assert 0 <= stats.tasked < 20
            assert stats.battery == 100 - stats.tasked * 5
            assert 0 <= stats.battery <= 100
            assert stats.under_maintenance == (stats.battery > 25)

    def test_document_uses_camel_case(self):
        stats = Statistics(tasked=16, battery=20, under_maintenance=False)
        assert stats.to_document() == {"tasked": 16, "battery": 20, "underMaintenance": False}


class TestRobot:
    def test_build_sets_nickname_to_name(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        robot = Robot.build(42, "x" * 8, random.Random(1), now=now)
        document = robot.to_document()

        assert document["name"] == "Robot-42"
        assert document["nickname"] == "Robot-42"
        assert document["description"] == "x" * 8
        assert document["updatedAt"] == now
        assert set(document["stats"]) == {"tasked", "battery", "underMaintenance"}

    def test_build_defaults_to_current_time(self):
        before = datetime.now(timezone.utc)
        robot = Robot.build(1, "", random.Random(1))
        assert robot.updated_at >= before


class TestFiller:
    def test_exact_multiple(self):
        assert filler(INSERT_FILLER_TOKEN, 16) == "simagix.simagix."

    def test_pads_up_to_at_least_size(self):
        value = filler(UPDATE_FILLER_TOKEN, 20)
        assert len(value.encode()) >= 20
        assert value == "MongoDB." * 3

    def test_default_size(self):
        assert len(filler(INSERT_FILLER_TOKEN, 4096)) == 4096

    def test_zero_size_is_empty(self):
        assert filler(INSERT_FILLER_TOKEN, 0) == ""


def test_placeholder_sku_is_digest_of_empty_input():
    assert placeholder_sku() == hashlib.sha1(b"").hexdigest().upper()
    assert placeholder_sku() == "DA39A3EE5E6B4B0D3255BFEF95601890AFD80709"


def test_brand_document():
    assert Brand(robot_name(3), "ABC").to_document() == {"name": "Robot-3", "sku": "ABC"}
