from __future__ import annotations

from swl.api import create_app
from swl.listener import Listener

listener = Listener()
app = create_app(listener)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
