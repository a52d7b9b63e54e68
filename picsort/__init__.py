"""picsort - content fingerprint index for directory trees"""

__version__ = "0.1.0"
