"""Platform abstraction layer."""

from .files import atomic_write_text, bump_manifest_version
from .http import HttpCall, HttpClient, HttpError, MockHttpClient, RealHttpClient
from .process import ProcessError, run, run_shell
from .shell import Shell, format_template, is_sub_dir

__all__ = [
    # files
    "atomic_write_text",
    "bump_manifest_version",
    # http
    "HttpCall",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # process
    "ProcessError",
    "run",
    "run_shell",
    # shell
    "Shell",
    "format_template",
    "is_sub_dir",
]
