import os


_PROFILES = {"standard", "light", "archive"}

_DEFAULTS = {
    "light": {
        "NETSTATS_MAX_HISTORY": "250",
        "NETSTATS_MAX_UNCLES_PER_BIN": "10",
        "NETSTATS_MAX_BINS": "25",
        "NETSTATS_HASHRATE_WINDOW": "32",
        "NETSTATS_MAX_BACKFILL": "25",
    },
    "archive": {
        "NETSTATS_MAX_HISTORY": "4000",
        "NETSTATS_MAX_UNCLES_PER_BIN": "100",
        "NETSTATS_MAX_BACKFILL": "100",
    },
}


def get_profile() -> str:
    profile = os.getenv("NETSTATS_PROFILE", "standard").strip().lower()
    if profile not in _PROFILES:
        return "standard"
    return profile


def apply_profile_defaults() -> str:
    profile = get_profile()
    defaults = _DEFAULTS.get(profile, {})
    for key, value in defaults.items():
        os.environ.setdefault(key, str(value))
    return profile


apply_profile_defaults()

MAX_HISTORY = int(os.getenv("NETSTATS_MAX_HISTORY", "1000"))
MAX_PEER_PROPAGATION = int(os.getenv("NETSTATS_MAX_PEER_PROPAGATION", "36"))
MIN_PROPAGATION_RANGE = int(os.getenv("NETSTATS_MIN_PROPAGATION_RANGE", "0"))
MAX_PROPAGATION_RANGE = int(os.getenv("NETSTATS_MAX_PROPAGATION_RANGE", "10000"))
MAX_BINS = int(os.getenv("NETSTATS_MAX_BINS", "40"))
MAX_UNCLES_PER_BIN = int(os.getenv("NETSTATS_MAX_UNCLES_PER_BIN", "25"))
HASHRATE_WINDOW = int(os.getenv("NETSTATS_HASHRATE_WINDOW", "64"))
MAX_BACKFILL = int(os.getenv("NETSTATS_MAX_BACKFILL", "50"))
TOP_MINERS = int(os.getenv("NETSTATS_TOP_MINERS", "5"))

DEFAULT_SETTINGS = {
    "MAX_HISTORY": MAX_HISTORY,
    "MAX_PEER_PROPAGATION": MAX_PEER_PROPAGATION,
    "MIN_PROPAGATION_RANGE": MIN_PROPAGATION_RANGE,
    "MAX_PROPAGATION_RANGE": MAX_PROPAGATION_RANGE,
    "MAX_BINS": MAX_BINS,
    "MAX_UNCLES_PER_BIN": MAX_UNCLES_PER_BIN,
    "HASHRATE_WINDOW": HASHRATE_WINDOW,
    "MAX_BACKFILL": MAX_BACKFILL,
    "TOP_MINERS": TOP_MINERS,
}
