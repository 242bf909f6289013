#!/usr/bin/env python3
"""
Run the nova-api operator through the Kopf CLI.

Any `kopf run` option can be passed through, e.g.:
    python run_operator.py --standalone -n openstack
    python run_operator.py --liveness=http://0.0.0.0:8080/healthz -A
"""
import sys

if __name__ == '__main__':
    import kopf.cli

    # Importing the package loads .env and registers all handlers
    import novaapi.app  # noqa: F401

    sys.argv.insert(1, 'run')
    sys.exit(kopf.cli.main(prog_name="kopf"))
