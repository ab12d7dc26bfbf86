"""
Run LC3 object images from the command line:

    python -m lc3vm IMAGE [IMAGE ...]
"""

import argparse
import sys

from .console import Console
from .lc3 import LC3, lc_hex

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="lc3vm",
        description="Run LC-3 object images. Execution starts at x3000.")
    parser.add_argument("images", nargs="+", metavar="IMAGE",
                        help="object file(s), loaded in the order given")
    args = parser.parse_args(argv)

    console = Console()
    lc3 = LC3(console)
    for filename in args.images:
        try:
            lc3.load_image(filename)
        except (OSError, ValueError) as exc:
            lc3.Error("failed to load image: %s (%s)\n" % (filename, exc))
            return 1

    try:
        with console.raw_mode():
            lc3.run()
    except ValueError as exc:
        lc3.Error("\nRuntime error at %s: %s\n" % (lc_hex(lc3.get_pc() - 1), exc))
        return 3
    except KeyboardInterrupt:
        lc3.Error("\nKeyboard Interrupt!\n")
        return 130
    return 0

if __name__ == '__main__':
    sys.exit(main())
