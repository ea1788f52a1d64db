"""Allow ``python -m reel_relay``."""

from reel_relay.cli import main

if __name__ == "__main__":
    main()
