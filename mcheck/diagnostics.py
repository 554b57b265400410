from __future__ import annotations

from typing import Any, Dict

from bson import json_util

STATUS_COMMAND = "isMaster"


def probe(client: Any) -> Dict[str, Any]:
    """Run the admin status command and print the reply as indented JSON.

    Connection problems surface as ``PyMongoError`` for the caller to treat as fatal.
    """

    result = client.admin.command(STATUS_COMMAND)
    print(json_util.dumps(result, indent=2), flush=True)
    return result
