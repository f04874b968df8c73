import pytest

from snackpack.errors import ParseError
from snackpack.models import Platform
from snackpack.request import build_request, is_relative_specifier, parse_request, split_specifier


@pytest.mark.parametrize(
    "identifier, expected",
    [
        ("firestorter@2.0.1", ("firestorter", "2.0.1", None)),
        ("firestorter", ("firestorter", "latest", None)),
        ("@react-navigation/stack@5.9.0", ("@react-navigation/stack", "5.9.0", None)),
        ("@react-navigation/stack", ("@react-navigation/stack", "latest", None)),
        (
            "react-native-gesture-handler/DrawerLayout@1.6.0",
            ("react-native-gesture-handler", "1.6.0", "DrawerLayout"),
        ),
        (
            "react-native-web/src/modules/normalizeColor@0.14.4",
            ("react-native-web", "0.14.4", "src/modules/normalizeColor"),
        ),
        ("@scope/name/sub/path@^1.2.0", ("@scope/name", "^1.2.0", "sub/path")),
        ("react-native-reanimated@2.0.0-alpha.6", ("react-native-reanimated", "2.0.0-alpha.6", None)),
        ("lib@", ("lib", "latest", None)),
    ],
)
def test_parse_request(identifier, expected):
    assert parse_request(identifier) == expected


@pytest.mark.parametrize(
    "identifier",
    ["", "   ", "@1.0.0", "@", "@scope", "@scope/", "/name", "name//sub", "name/../etc", "@/name@1.0.0"],
)
def test_parse_request_rejects_nameless_input(identifier):
    with pytest.raises(ParseError) as exc_info:
        parse_request(identifier)
    assert str(exc_info.value) == "Failed to parse request"


def test_build_request_defaults_to_all_platforms():
    request = build_request("lib@1.0.0")
    assert request.platforms == [Platform.ios, Platform.android, Platform.web]
    assert request.worklet_transform is False
    assert request.identifier == "lib"


def test_build_request_keeps_platform_order_without_duplicates():
    request = build_request("lib/sub@1.0.0", ["web", "ios", "web"], True)
    assert request.platforms == [Platform.web, Platform.ios]
    assert request.worklet_transform is True
    assert request.identifier == "lib/sub"


def test_build_request_rejects_unknown_platform():
    with pytest.raises(ParseError, match="Unsupported platform 'windows'"):
        build_request("lib@1.0.0", ["ios", "windows"])


def test_split_specifier():
    assert split_specifier("lib") == ("lib", None)
    assert split_specifier("lib/DrawerLayout") == ("lib", "DrawerLayout")
    assert split_specifier("@scope/lib") == ("@scope/lib", None)
    assert split_specifier("@scope/lib/a/b") == ("@scope/lib", "a/b")


def test_is_relative_specifier():
    assert is_relative_specifier("./a")
    assert is_relative_specifier("../a/b")
    assert is_relative_specifier(".")
    assert not is_relative_specifier("lib")
    assert not is_relative_specifier(".lib")
