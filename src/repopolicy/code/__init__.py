"""Code domains implemented without an external tool."""

from repopolicy.code.disable_comments import check_disable_comments
from repopolicy.code.tests_presence import check_tests

__all__ = ["check_disable_comments", "check_tests"]
