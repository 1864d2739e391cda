import argparse
import sys
from pathlib import Path

from image_installer import __version__
from image_installer.app.run import run_install
from image_installer.app.signals import cleanup_on_signals
from image_installer.domain.models import RunConfiguration
from image_installer.exceptions import InstallerError
from image_installer.logging import LoggerFactory, setup_logging
from image_installer.services.system import require_root
from image_installer.storage.tracker import ResourceTracker


def build_parser():
    parser = argparse.ArgumentParser(
        prog="image-installer",
        description="Install a system image to permanent storage",
    )
    parser.add_argument(
        "--image-path",
        help="Path or URL (http, https, ftp, tftp, scp, sftp) of the image to install",
    )
    parser.add_argument("--vrf", help="Routing domain (VRF) used to download the image")
    parser.add_argument("--username", help="Username for the image download")
    parser.add_argument("--password", help="Password for the image download")
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Answer every question with its default",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, log_dir=args.log_dir)
    log = LoggerFactory.for_install()

    try:
        require_root()
        config = RunConfiguration.from_inputs(
            image_ref=args.image_path,
            username=args.username,
            password=args.password,
            routing_domain=args.vrf,
            assume_defaults=args.no_prompt,
        )
        tracker = ResourceTracker()
        with cleanup_on_signals(tracker), tracker:
            run_install(config, tracker)
    except InstallerError as error:
        log.error(str(error))
        return error.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
