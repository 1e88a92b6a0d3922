import os
import re

CONFIG_FILE = 'cfbasic.cfg'

DEFAULTS = {
    'MEM': '1G',
    'DISPLAY': 'CONSOLE',
}

DISK_KEY = re.compile(r'^D[0-9A-Z]$')


def load_config(path=CONFIG_FILE):
    """Read ``KEY = value`` settings; returns (settings, disks).

    Disk keys (D0, D1, ... DA ...) name program search directories and are
    returned separately. A missing file just yields the defaults.
    """
    settings = dict(DEFAULTS)
    disks = {}
    try:
        if os.path.exists(path):
            with open(path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith('#'): continue
                    if '=' in line:
                        key, val = line.split('=', 1)
                        key = key.strip().upper()
                        val = val.strip()
                        if DISK_KEY.match(key):
                            disks[key] = val
                        else:
                            settings[key] = val
    except OSError as e:
        print(f"Warning: Error loading {path}: {e}")
    return settings, disks
