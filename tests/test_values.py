"""Tests for CommandState value conversion and range checking."""

import pytest

from bluefly_vario.core import (
    CommandState,
    ParameterValueError,
    new_command_states,
    new_parameter_states,
    parse_user_value,
)
from bluefly_vario.models import get_command, get_parameter, list_commands, list_parameters


def state_for(name: str) -> CommandState:
    spec = get_parameter(name) or get_command(name)
    assert spec is not None, name
    return CommandState(spec)


class TestParseUserValue:
    """User input normalization."""

    def test_numbers_and_strings(self):
        assert parse_user_value(3) == 3.0
        assert parse_user_value(0.25) == 0.25
        assert parse_user_value(" 1.5 ") == 1.5
        assert parse_user_value(True) == 1.0

    @pytest.mark.parametrize("value", ["abc", "", "1,5", "nan"])
    def test_non_numeric_raises(self, value):
        with pytest.raises(ParameterValueError):
            parse_user_value(value)

    def test_unsupported_type_raises(self):
        with pytest.raises(ParameterValueError):
            parse_user_value(None)

    def test_error_is_value_error(self):
        """Callers catching ValueError also catch parse failures."""
        with pytest.raises(ValueError):
            parse_user_value("x")


class TestSetValue:
    """set_value converts into the stored domain and validates the range."""

    def test_starts_unset(self):
        state = state_for("liftThreshold")
        assert state.value is None
        assert not state.has_value
        assert state.value_as_string() is None

    def test_double_scales_by_factor(self):
        state = state_for("liftThreshold")
        assert state.set_value(0.3)
        assert state.value == 30
        assert state.value_as_string() == "0.3"

    def test_double_from_string(self):
        state = state_for("volume")
        assert state.set_value("0.1")
        assert state.value == 100
        assert state.value_as_string() == "0.1"

    def test_rounds_to_nearest_integer(self):
        state = state_for("liftThreshold")
        assert state.set_value(0.257)
        assert state.value == 26

    def test_int_range_bounds(self):
        state = state_for("liftFreqBase")
        assert not state.set_value(499)
        assert state.value is None
        assert state.set_value(500)
        assert state.set_value("2000")
        assert state.value == 2000
        assert not state.set_value(2001)
        assert state.value == 2000

    def test_out_of_range_keeps_previous_value(self):
        state = state_for("outputMode")
        assert state.set_value(3)
        assert not state.set_value(8)
        assert state.value == 3

    def test_zero_is_a_real_value(self):
        state = state_for("outputMode")
        assert state.set_value(0)
        assert state.value == 0
        assert state.has_value
        assert state.value_as_string() == "0"

    def test_int_offset(self):
        state = state_for("outputQNH")
        assert state.set_value(101325)
        assert state.value == 21325
        assert state.value_as_string() == "101325"

    def test_int_offset_below_offset_rejected(self):
        state = state_for("outputQNH")
        assert not state.set_value(79999)
        assert state.value is None

    def test_boolean_collapses_to_zero_or_one(self):
        state = state_for("greenLED")
        assert state.set_value(5)
        assert state.value == 1
        assert state.value_as_string() == "True"
        assert state.set_value(0)
        assert state.value == 0
        assert state.value_as_string() == "False"
        assert state.set_value(True)
        assert state.value == 1

    def test_negative_rejected(self):
        state = state_for("liftThreshold")
        assert not state.set_value(-0.1)

    def test_non_numeric_raises_and_keeps_value(self):
        state = state_for("liftThreshold")
        state.set_value(0.5)
        with pytest.raises(ParameterValueError):
            state.set_value("fast")
        assert state.value == 50

    def test_bare_command_takes_no_value(self):
        state = state_for("getSettings")
        assert not state.set_value(1)
        assert state.value is None


class TestDeviceValues:
    """Values reported by the device are already in the stored domain."""

    def test_set_from_parsed(self):
        state = state_for("liftThreshold")
        assert state.set_from_parsed(35)
        assert state.value_as_string() == "0.35"

    def test_set_from_parsed_rejects_negative(self):
        state = state_for("liftThreshold")
        assert not state.set_from_parsed(-1)
        assert state.value is None

    def test_reset(self):
        state = state_for("liftThreshold")
        state.set_from_parsed(35)
        state.reset()
        assert state.value is None


class TestDefaults:
    """Default values render in user units."""

    def test_default_strings(self):
        assert state_for("liftThreshold").default_value_as_string() == "0.2"
        assert state_for("outputQNH").default_value_as_string() == "101325"
        assert state_for("volume").default_value_as_string() == "1.0"
        assert state_for("useAudioWhenDisconnected").default_value_as_string() == "True"
        assert state_for("liftFreqBase").default_value_as_string() == "1000"

    def test_command_has_no_default(self):
        state = state_for("reset")
        assert not state.has_default_value
        assert state.default_value_as_string() is None

    def test_parameter_has_default(self):
        assert state_for("liftThreshold").has_default_value


class TestSerialize:
    """CommandState.serialize goes through the framing layer."""

    def test_parameter_with_value(self):
        state = state_for("liftThreshold")
        state.set_value("0.3")
        assert state.serialize() == "$BFL 30*"

    def test_parameter_without_value_is_bare(self):
        assert state_for("liftThreshold").serialize() == "$BFL*"

    def test_arguments_stored_before_serialize(self):
        state = state_for("playSound")
        assert state.serialize("1000 100") == "$BSD 1000 100*"
        assert state.arguments == "1000 100"
        assert state.serialize() == "$BSD 1000 100*"


def test_state_factories_cover_registry():
    commands = new_command_states()
    parameters = new_parameter_states()
    assert list(commands) == list_commands()
    assert list(parameters) == list_parameters()
    assert all(not s.has_value for s in parameters.values())
    # Independent instances per call
    assert new_parameter_states()["volume"] is not parameters["volume"]


class TestRoundTrip:
    """Rendering a stored value and setting it back gives the same integer."""

    @pytest.mark.parametrize("name, stored", [
        ("liftFreqBase", 500),
        ("liftFreqBase", 1234),
        ("liftFreqBase", 2000),
        ("liftThreshold", 0),
        ("liftThreshold", 1),
        ("liftThreshold", 35),
        ("liftThreshold", 1000),
        ("positionNoise", 10),
        ("positionNoise", 9999),
        ("volume", 1000),
        ("outputQNH", 0),
        ("outputQNH", 21325),
        ("outputQNH", 65535),
    ])
    def test_numeric_round_trip(self, name, stored):
        source = state_for(name)
        source.set_from_parsed(stored)
        target = state_for(name)
        assert target.set_value(source.value_as_string())
        assert target.value == stored

    @pytest.mark.parametrize("stored", [0, 1])
    def test_boolean_round_trip(self, stored):
        source = state_for("greenLED")
        source.set_from_parsed(stored)
        target = state_for("greenLED")
        assert target.set_value(source.value_as_string() == "True")
        assert target.value == stored


class TestOversizedInput:
    """Values too large for a float are reported, not raised as OverflowError."""

    def test_huge_int_raises_value_error(self):
        with pytest.raises(ParameterValueError):
            state_for("outputMode").set_value(10 ** 400)

    def test_huge_string_is_out_of_range(self):
        state = state_for("outputMode")
        assert not state.set_value("1" * 400)
        assert state.value is None
