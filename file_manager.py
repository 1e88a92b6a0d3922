import logging
import os
import re

log = logging.getLogger(__name__)

# "<line number><whitespace><text>"
PROGRAM_LINE = re.compile(r'^\s*(\d+)\s+(.+)$')

# one character per byte, so PETSCII text survives a load/save round trip
PROGRAM_ENCODING = 'latin-1'


class FileManager:
    """Finds, reads and writes program text files.

    ``disks`` maps a directory key (D0, D1, ...) to a directory searched
    when a program name does not exist as given.
    """

    def __init__(self, disks=None):
        self.disks = dict(disks or {})

    def find_program(self, filename):
        if os.path.exists(filename):
            return filename
        # Sort disks alphabetically
        for key in sorted(self.disks.keys()):
            path = os.path.join(self.disks[key], filename)
            if os.path.exists(path):
                return path
        return None

    def read_program(self, filename):
        """Return the (number, text) pairs stored in ``filename``."""
        path = self.find_program(filename)
        if not path:
            raise FileNotFoundError(f"File not found: {filename}")

        lines = []
        with open(path, 'r', encoding=PROGRAM_ENCODING) as f:
            for line in f:
                mo = PROGRAM_LINE.match(line.rstrip('\r\n'))
                if mo:
                    lines.append((int(mo.group(1)), mo.group(2)))
                else:
                    log.debug("skipping %r in %s", line, path)
        log.info("read %d lines from %s", len(lines), path)
        return lines

    def write_program(self, filename, lines):
        with open(filename, 'w', encoding=PROGRAM_ENCODING) as f:
            for line in lines:
                f.write(f"{line.number} {line.text}\n")
        log.info("wrote %s", filename)
