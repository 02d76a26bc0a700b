"""Allow ``python -m ai_stream_mock`` to launch the mock server."""

from ai_stream_mock import main

if __name__ == "__main__":
    raise SystemExit(main())
