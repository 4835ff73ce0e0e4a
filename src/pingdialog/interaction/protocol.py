"""Write exactly one response object to the output channel."""

from __future__ import annotations

import json
from typing import TextIO

from pingdialog.interaction.response import DialogResponse


def encode_response(response: DialogResponse) -> str:
    return json.dumps(response.to_wire(), ensure_ascii=True, separators=(",", ":"))


def emit_response(response: DialogResponse, stream: TextIO) -> int:
    """Serialize `response` as one JSON line and return the process exit code."""

    stream.write(encode_response(response) + "\n")
    stream.flush()
    return response.exit_code


def emit_error(message: str, stream: TextIO) -> int:
    return emit_response(DialogResponse.error_response(message), stream)
