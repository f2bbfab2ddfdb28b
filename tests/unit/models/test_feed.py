"""Tests for emwin_tg.models.feed."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from emwin_tg.models.feed import FeedDescriptor, ValidatorState


def make_feed(**overrides) -> FeedDescriptor:
    """Helper to create test feeds."""
    fields = {
        "name": "test",
        "url": "https://example.com/test.zip",
        "interval": timedelta(seconds=60),
    }
    fields.update(overrides)
    return FeedDescriptor(**fields)


class TestFeedDescriptor:
    """Tests for FeedDescriptor model."""

    def test_defaults(self) -> None:
        """Feeds run forever unless bounded."""
        feed = make_feed()
        assert feed.max_ticks is None
        assert feed.interval_seconds == 60.0

    def test_interval_from_seconds(self) -> None:
        """Intervals accept plain seconds."""
        feed = make_feed(interval=47)
        assert feed.interval == timedelta(seconds=47)

    @pytest.mark.parametrize("interval", [timedelta(0), timedelta(seconds=-1)])
    def test_interval_must_be_positive(self, interval: timedelta) -> None:
        """Zero or negative intervals are rejected."""
        with pytest.raises(ValidationError):
            make_feed(interval=interval)

    def test_max_ticks_not_negative(self) -> None:
        """A negative tick budget is rejected."""
        with pytest.raises(ValidationError):
            make_feed(max_ticks=-1)

    def test_max_ticks_zero_allowed(self) -> None:
        """A zero tick budget is valid and means never fetch."""
        assert make_feed(max_ticks=0).max_ticks == 0

    def test_frozen(self) -> None:
        """Descriptors are immutable."""
        feed = make_feed()
        with pytest.raises(ValidationError):
            feed.name = "other"

    def test_extra_fields_forbidden(self) -> None:
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            make_feed(priority=1)


class TestValidatorState:
    """Tests for ValidatorState model."""

    def test_empty(self) -> None:
        """A new state has no validators."""
        state = ValidatorState()
        assert state.is_empty
        assert state.headers() == {}

    def test_etag_only(self) -> None:
        """An entity tag becomes If-None-Match."""
        state = ValidatorState(etag='"abc"')
        assert not state.is_empty
        assert state.headers() == {"If-None-Match": '"abc"'}

    def test_both_validators(self) -> None:
        """Both validators are sent when present."""
        state = ValidatorState(
            etag='"abc"',
            last_modified="Wed, 21 Oct 2015 07:28:00 GMT",
        )
        assert state.headers() == {
            "If-None-Match": '"abc"',
            "If-Modified-Since": "Wed, 21 Oct 2015 07:28:00 GMT",
        }

    def test_equality(self) -> None:
        """States compare by value."""
        assert ValidatorState(etag="a") == ValidatorState(etag="a")
        assert ValidatorState(etag="a") != ValidatorState(etag="b")
