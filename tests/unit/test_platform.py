import pytest

from emuboot.platform import HostPlatform


def test_platform_members_and_values() -> None:
    """Enum members should have expected names, values, and types."""
    assert HostPlatform.DARWIN.value == "darwin"
    assert HostPlatform.LINUX.value == "linux"
    assert HostPlatform.WINDOWS.value == "windows"
    assert HostPlatform.OTHER.value == "other"
    assert isinstance(HostPlatform.LINUX, str)
    assert HostPlatform("windows") is HostPlatform.WINDOWS


@pytest.mark.parametrize(
    ("sys_platform", "expected"),
    [
        ("darwin", HostPlatform.DARWIN),
        ("linux", HostPlatform.LINUX),
        ("linux2", HostPlatform.LINUX),
        ("win32", HostPlatform.WINDOWS),
        ("cygwin", HostPlatform.WINDOWS),
        ("freebsd14", HostPlatform.OTHER),
    ],
)
def test_platform_from_sys_platform(sys_platform: str, expected: HostPlatform) -> None:
    assert HostPlatform.from_sys_platform(sys_platform) is expected


def test_platform_current_uses_sys_platform(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("emuboot.platform.sys.platform", "darwin")
    assert HostPlatform.current() is HostPlatform.DARWIN
