# autobuffer.py - stream a remote video to disk and say when it is safe to play
import sys
import logging
import argparse

import stream_settings
from duration_rules import parse_duration
from stream_errors import VideoStreamError
from video_stream import open_video_stream


def build_parser():
    parser = argparse.ArgumentParser(
        prog="autobuffer",
        description="Download a video over HTTP and report when playback can safely start.",
    )
    parser.add_argument("-url", "--url", default="", help="HTTP url of the video to stream")
    parser.add_argument("-duration", "--duration", default=None,
                        help='Duration of the video to stream, e.g. "1h50m" or "90s"')
    parser.add_argument("-out", "--out", default=stream_settings.DEFAULT_OUT_PATH,
                        help="Filepath to stream output")
    parser.add_argument("-username", "--username", default="", help="Username to use for HTTP basic auth")
    parser.add_argument("-password", "--password", default="", help="Password to use for HTTP basic auth")
    parser.add_argument("-timeout", "--timeout", type=float, default=None,
                        help="Connect/read timeout in seconds (default: wait forever)")
    parser.add_argument("-progress", "--progress", action="store_true", help="Show a progress bar")
    parser.add_argument("-verbose", "--verbose", action="store_true", help="Log debug details")
    return parser


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # urllib3 connection chatter drowns out our own debug lines
    logging.getLogger("urllib3").setLevel(logging.INFO)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.url or not args.duration:
        print("A video url and duration is required for autobuffer.  Usage:")
        parser.print_help(sys.stdout)
        return 0

    try:
        duration = parse_duration(args.duration)
    except ValueError as e:
        print(f"Invalid duration: {e}.  Usage:")
        parser.print_help(sys.stdout)
        return 0

    if args.timeout is not None and not args.timeout > 0:
        print(f"Invalid timeout: {args.timeout}, must be a positive number of seconds.  Usage:")
        parser.print_help(sys.stdout)
        return 0

    timeout = args.timeout if args.timeout is not None else stream_settings.request_timeout()

    try:
        vs = open_video_stream(
            args.url,
            duration,
            args.out,
            username=args.username or None,
            password=args.password or None,
            timeout=timeout,
            progress=args.progress,
        )
    except VideoStreamError as e:
        print(f"Error creating video stream: {e}")
        return 1

    with vs:
        try:
            vs.stream()
        except VideoStreamError as e:
            print(f"Error streaming {args.url}: {e}")
            return 1

    print(f"Saved {vs.bytes_written:,} bytes to {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
