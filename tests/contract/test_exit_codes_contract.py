from __future__ import annotations

import agency_import.cli.__main__ as cli_main


def test_exit_code_values():
    assert cli_main.EXIT_SUCCESS_ALL == 0
    assert cli_main.EXIT_FATAL == 1
    assert cli_main.EXIT_PARTIAL_FAILURE == 2
