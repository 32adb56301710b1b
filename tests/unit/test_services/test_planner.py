"""Unit tests for upload planning."""

import pytest
from uploadflow.core.exceptions import PlanningError, ValidationError
from uploadflow.services.planner import UploadPlanner


def test_file_at_threshold_is_single_part(planner):
    plan = planner.plan("photo.jpg", 10_000_000, "image/jpeg")

    assert plan.multipart is False
    assert plan.number_of_parts == 1
    assert plan.part_size is None
    assert plan.part_ranges() == [(0, 10_000_000)]


def test_file_above_threshold_is_multipart(planner):
    plan = planner.plan("photo.jpg", 10_000_001, "image/jpeg")

    assert plan.multipart is True
    assert plan.part_size == 5_000_000
    assert plan.number_of_parts == 3


def test_part_ranges_cover_file_exactly(planner):
    plan = planner.plan("big.png", 12_345_678, "image/png")
    ranges = plan.part_ranges()

    assert len(ranges) == plan.number_of_parts
    assert ranges[0][0] == 0
    assert ranges[-1][1] == 12_345_678
    for (_, end), (start, _) in zip(ranges, ranges[1:]):
        assert end == start
    assert all(end - start == 5_000_000 for start, end in ranges[:-1])


def test_fifty_megabyte_file_has_ten_parts(planner):
    plan = planner.plan("raw.heic", 50_000_000, "image/heic")
    assert plan.number_of_parts == 10


@pytest.mark.parametrize(
    "filename,size,content_type",
    [
        ("", 100, "image/jpeg"),
        ("   ", 100, "image/jpeg"),
        ("noextension", 100, "image/jpeg"),
        ("a" * 252 + ".jpg", 100, "image/jpeg"),
        ("photo.jpg", 0, "image/jpeg"),
        ("photo.jpg", -5, "image/jpeg"),
        ("photo.jpg", 50 * 1024 * 1024 + 1, "image/jpeg"),
        ("clip.mp4", 100, "video/mp4"),
    ],
)
def test_invalid_input_is_rejected(planner, filename, size, content_type):
    with pytest.raises(ValidationError):
        planner.plan(filename, size, content_type)


def test_max_size_is_inclusive(planner):
    plan = planner.plan("photo.jpg", 50 * 1024 * 1024, "image/jpeg")
    assert plan.multipart is True


def test_too_many_parts_is_a_planning_error():
    planner = UploadPlanner(
        max_file_size=1_000_000,
        multipart_threshold=0,
        part_size=10,
        allowed_content_types=["image/jpeg"],
    )

    with pytest.raises(PlanningError):
        planner.plan("photo.jpg", 100_001, "image/jpeg")

    # Exactly at the store's part limit is fine
    assert planner.plan("photo.jpg", 100_000, "image/jpeg").number_of_parts == 10_000


def test_part_size_must_be_positive():
    with pytest.raises(ValueError):
        UploadPlanner(
            max_file_size=100, multipart_threshold=10, part_size=0, allowed_content_types=[]
        )
