from __future__ import annotations

from ..platform import HostPlatform
from .models import BootRequest

# Software/indirect renderers for headless runs, per host OS
_HEADLESS_GPU_BY_PLATFORM: dict[HostPlatform, str] = {
    HostPlatform.DARWIN: "host",
    HostPlatform.LINUX: "swiftshader_indirect",
    HostPlatform.WINDOWS: "angle_indirect",
}
_HEADLESS_GPU_FALLBACK = "auto"


def resolve_gpu_method(
    override: str | None, headless: bool, platform: HostPlatform
) -> str | None:
    """
    Resolve the `-gpu` backend for the emulator.

    Args:
        override (str | None): Explicit backend; returned verbatim when set.
        headless (bool): Whether the emulator runs without a window.
        platform (HostPlatform): Host operating system.

    Returns:
        str | None: Backend name, or None when there is no preference
        (windowed runs let the emulator pick its own renderer).
    """
    if override:
        return override
    if not headless:
        return None
    return _HEADLESS_GPU_BY_PLATFORM.get(platform, _HEADLESS_GPU_FALLBACK)


def build_launch_args(request: BootRequest) -> list[str]:
    """
    Build the emulator command-line arguments for a boot request.

    The order of the tokens is fixed so the resulting command line is reproducible.
    """
    port = str(request.port) if request.port else ""
    args = [
        "-verbose",
        "-no-audio",
        "-no-boot-anim",
        "-no-window" if request.headless else "",
        "-read-only" if request.read_only else "",
        "-port" if port else "",
        port,
        f"@{request.device_name}",
    ]

    gpu = resolve_gpu_method(request.gpu_override, request.headless, request.platform)
    if gpu:
        args += ["-gpu", gpu]

    return [a for a in args if a]
