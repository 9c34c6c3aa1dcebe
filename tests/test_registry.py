"""Tests for the command and parameter registry."""

import pytest

from bluefly_vario.models import (
    CommandSpec,
    ParameterSpec,
    ParameterType,
    get_command,
    get_parameter,
    get_parameter_name,
    list_commands,
    list_parameters,
    lookup,
    registry_to_dict,
    spec_to_dict,
)


EXPECTED_COMMANDS = [
    ("eraseLocus", "PMTK184,1"),
    ("getSettings", "BST"),
    ("getTemp", "TMP"),
    ("playSound", "BSD"),
    ("queryLocus", "PMTK183"),
    ("queryLocusData", "PMTK622,0"),
    ("reset", "RST"),
    ("restoreDefaults", "RSX"),
    ("setBluetoothName", "RNC SN,"),
    ("simulateButton", "BTN"),
    ("sleep", "SLP"),
    ("sleepNoWake", "SLX"),
    ("volumeDown", "BVD"),
    ("volumeUp", "BVU"),
]

# Parameter codes and defaults in sorted-name order
EXPECTED_PARAMETER_CODES = [
    "BZT", "BGL", "BLD", "BHT", "BHV", "BFP", "BFQ", "BFI", "BOL", "BFL",
    "BOF", "BOM", "BQH", "BFK", "BQS", "BRM", "BTH", "BSQ", "BSI", "BOS",
    "BFS", "BSM", "BDM", "BTT", "BRB", "BUR", "BR2", "BPT", "BBZ", "BAC",
    "BAD", "BUP", "BVL",
]
EXPECTED_PARAMETER_DEFAULTS = [
    40, 10, 1, 600, 20, 1, 1000, 100, 5, 20, 1, 0, 21325, 100, 0, 100,
    180, 400, 100, 5, 20, 100, 0, 100, 207, 0, 16, 1, 0, 0, 1, 0, 1000,
]


class TestRegistryContents:
    """The tables match what the firmware understands."""

    def test_commands_sorted_with_codes(self):
        names = list_commands()
        assert names == sorted(names)
        assert [(n, get_command(n).code) for n in names] == EXPECTED_COMMANDS

    def test_parameter_codes_in_name_order(self):
        names = list_parameters()
        assert names == sorted(names)
        assert len(names) == 33
        assert [get_parameter(n).code for n in names] == EXPECTED_PARAMETER_CODES

    def test_parameter_defaults_in_name_order(self):
        defaults = [get_parameter(n).default_value for n in list_parameters()]
        assert defaults == EXPECTED_PARAMETER_DEFAULTS

    def test_names_are_disjoint(self):
        assert not set(list_commands()) & set(list_parameters())

    def test_parameter_codes_are_unique(self):
        codes = [get_parameter(n).code for n in list_parameters()]
        assert len(codes) == len(set(codes))

    def test_defaults_within_range(self):
        for name in list_parameters():
            spec = get_parameter(name)
            assert spec.min_value <= spec.default_value <= spec.max_value, name

    def test_selected_parameter_details(self):
        spec = get_parameter("liftThreshold")
        assert spec.value_type == ParameterType.DOUBLE
        assert (spec.min_value, spec.max_value, spec.factor) == (0, 1000, 100.0)

        qnh = get_parameter("outputQNH")
        assert qnh.value_type == ParameterType.INT_OFFSET
        assert qnh.factor == 80000.0

        assert get_parameter("outputMode").max_value == 7
        assert get_parameter("isPrintPressure").min_hardware_version == 99

    def test_argument_commands(self):
        play = get_command("playSound")
        assert play.accepts_arguments
        assert play.default_arguments == "800 500 400 500"

        bt = get_command("setBluetoothName")
        assert bt.accepts_arguments
        assert bt.default_arguments == "BlueFly-"
        assert bt.min_hardware_version == 12

    def test_pmtk_commands(self):
        pmtk = [n for n in list_commands() if get_command(n).is_pmtk]
        assert pmtk == ["eraseLocus", "queryLocus", "queryLocusData"]


class TestLookup:
    """Name and code resolution."""

    def test_get_unknown_returns_none(self):
        assert get_command("nope") is None
        assert get_parameter("nope") is None
        assert get_parameter("getSettings") is None
        assert get_command("liftThreshold") is None

    def test_parameter_name_from_code(self):
        assert get_parameter_name("BFL") == "liftThreshold"
        assert get_parameter_name("BQH") == "outputQNH"
        assert get_parameter_name("XXX") is None
        # Command codes are not parameter codes
        assert get_parameter_name("BST") is None

    def test_lookup_finds_both_kinds(self):
        assert isinstance(lookup("liftThreshold"), ParameterSpec)
        assert lookup("getSettings").code == "BST"
        assert lookup("unknown") is None

    def test_has_parameters(self):
        assert get_parameter("volume").has_parameters
        assert not get_command("reset").has_parameters


class TestSpecValidation:
    """Invalid specs are rejected at construction."""

    def test_empty_code_rejected(self):
        with pytest.raises(ValueError):
            CommandSpec("", "desc")

    def test_empty_description_rejected(self):
        with pytest.raises(ValueError):
            CommandSpec("XYZ", "")

    def test_min_above_max_rejected(self):
        with pytest.raises(ValueError):
            ParameterSpec("XYZ", "desc", min_value=10, max_value=5)

    def test_max_above_wire_limit_rejected(self):
        with pytest.raises(ValueError):
            ParameterSpec("XYZ", "desc", max_value=70000)

    def test_default_outside_range_rejected(self):
        with pytest.raises(ValueError):
            ParameterSpec("XYZ", "desc", min_value=0, max_value=7, default_value=8)

    def test_specs_are_immutable(self):
        spec = get_parameter("volume")
        with pytest.raises(AttributeError):
            spec.max_value = 1


def test_spec_to_dict_includes_parameter_fields():
    data = spec_to_dict(get_parameter("volume"))
    assert data["code"] == "BVL"
    assert data["type"] == "double"
    assert data["factor"] == 1000.0
    assert data["default"] == 1000

    command = spec_to_dict(get_command("queryLocus"))
    assert command["pmtk"] is True
    assert "type" not in command


def test_registry_to_dict_lists_everything():
    data = registry_to_dict()
    assert list(data["commands"]) == list_commands()
    assert list(data["parameters"]) == list_parameters()


def test_argument_command_requires_default_arguments():
    with pytest.raises(ValueError):
        CommandSpec("XYZ", "desc", accepts_arguments=True)
    assert CommandSpec("XYZ", "desc", accepts_arguments=True, default_arguments="").default_arguments == ""
