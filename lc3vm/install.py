import argparse
import json
import os
import sys
from tempfile import TemporaryDirectory

from jupyter_client.kernelspec import install_kernel_spec

kernel_json = {
    "argv": [
        sys.executable,
        "-m", "lc3vm.kernel",
        "-f", "{connection_file}"
    ],
    "display_name": "LC3 VM",
    "language": "lc3",
}

def install_my_kernel_spec(user=True, prefix=None):
    with TemporaryDirectory() as td:
        os.chmod(td, 0o755) # Starts off as 700, not user readable
        with open(os.path.join(td, 'kernel.json'), 'w') as f:
            json.dump(kernel_json, f, sort_keys=True)

        print('Installing Jupyter kernel spec')
        return install_kernel_spec(td, 'lc3vm', user=user, replace=True,
                                   prefix=prefix)

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="python -m lc3vm.install",
        description="Install the LC3 VM Jupyter kernel spec.")
    where = parser.add_mutually_exclusive_group()
    where.add_argument("--user", action="store_true", default=True,
                       help="install for the current user (default)")
    where.add_argument("--sys-prefix", action="store_true",
                       help="install into sys.prefix, e.g. a virtualenv or conda env")
    where.add_argument("--prefix", metavar="DIR",
                       help="install into the given prefix")
    args = parser.parse_args(argv)

    if args.sys_prefix:
        install_my_kernel_spec(user=False, prefix=sys.prefix)
    elif args.prefix:
        install_my_kernel_spec(user=False, prefix=args.prefix)
    else:
        install_my_kernel_spec(user=True)

if __name__ == '__main__':
    main()
