"""Campus Feed: event and announcement lifecycle, RSVPs and newsfeeds."""

__version__ = "0.1.0"
