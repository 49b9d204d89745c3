#!/usr/bin/env python3
"""
Mailway Configuration CLI

Command-line interface for inspecting and updating the conf.d configuration.
"""

import argparse
import json
import signal
import sys
import threading
from pathlib import Path

from .errors import ConfigError
from .service import ConfigService


class MailwayConfigCLI:
    """CLI client for the Mailway configuration store."""

    def _service(self, args, apply_logging: bool = False) -> ConfigService:
        root = Path(args.root) if args.root else None
        return ConfigService(root=root, apply_logging=apply_logging)

    def cmd_show(self, args):
        """Show current configuration."""
        service = self._service(args)
        service.start(watch=False)

        if args.json:
            print(json.dumps(service.get().with_defaults(), indent=2))
        else:
            print(service.pretty_print(), end="")

        return 0

    def cmd_watch(self, args):
        """Load configuration and keep it current until interrupted."""
        service = self._service(args, apply_logging=True)
        service.start(watch=True)

        done = threading.Event()

        def signal_handler(signum, frame):
            done.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, signal_handler)

        try:
            done.wait()
        finally:
            service.stop()

        if args.telemetry:
            print(json.dumps(service.telemetry(), indent=2))

        return 0

    def cmd_set_jwt(self, args):
        """Write server-jwt.yml."""
        service = self._service(args)
        service.start(watch=False)
        service.write_server_jwt(args.jwt)
        print("✅ server-jwt.yml written")
        return 0

    def cmd_set_instance(self, args):
        """Write instance.yml."""
        service = self._service(args)
        service.start(watch=False)
        service.write_instance_config(args.mode, args.hostname, args.email)
        print("✅ instance.yml written")
        return 0

    def cmd_set_dkim(self, args):
        """Write dkim.yml."""
        service = self._service(args)
        service.start(watch=False)
        service.write_dkim(args.key_path)
        print("✅ dkim.yml written")
        return 0

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Mailway Configuration CLI",
            prog="mailway-config"
        )
        parser.add_argument("--root", help="Mailway root directory (default: $MAILWAY_ROOT or /etc/mailway)")

        subparsers = parser.add_subparsers(dest="command", help="Command to execute")

        # Show command
        show_parser = subparsers.add_parser("show", help="Show current configuration")
        show_parser.add_argument("--json", action="store_true", help="Output as JSON")

        # Watch command
        watch_parser = subparsers.add_parser("watch", help="Watch conf.d and reload on change")
        watch_parser.add_argument("--telemetry", action="store_true", help="Print reload telemetry on exit")

        # Write commands
        jwt_parser = subparsers.add_parser("set-jwt", help="Write the server JWT fragment")
        jwt_parser.add_argument("jwt", help="Server authentication token")

        instance_parser = subparsers.add_parser("set-instance", help="Write the instance fragment")
        instance_parser.add_argument("--mode", required=True, help="Operating mode (e.g. local)")
        instance_parser.add_argument("--hostname", required=True, help="Instance hostname")
        instance_parser.add_argument("--email", required=True, help="Instance contact email")

        dkim_parser = subparsers.add_parser("set-dkim", help="Write the DKIM fragment")
        dkim_parser.add_argument("key_path", help="DKIM signing key file path")

        return parser

    def run(self, argv=None):
        """Run CLI."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 1

        # Route to command handler
        cmd_map = {
            "show": self.cmd_show,
            "watch": self.cmd_watch,
            "set-jwt": self.cmd_set_jwt,
            "set-instance": self.cmd_set_instance,
            "set-dkim": self.cmd_set_dkim,
        }

        handler = cmd_map[args.command]

        try:
            return handler(args)
        except KeyboardInterrupt:
            print("\nInterrupted")
            return 130
        except ConfigError as e:
            print(f"❌ Error: {e.message}", file=sys.stderr)
            if e.suggestion:
                print(f"  → {e.suggestion}", file=sys.stderr)
            return 1


def main():
    """Main entry point."""
    cli = MailwayConfigCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
