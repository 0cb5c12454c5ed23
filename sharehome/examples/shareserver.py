#!/usr/bin/env python3
"""
Home directory share server

Serves one directory tree (the home directory of the invoking user by default)
over HTTP or HTTPS:
- Directory listings for every directory under the root
- Downloading individual files
- Uploading a file into the listed directory with a multipart/form-data POST

Usage:
    sharehome [directory] [--host HOST] [--port PORT] [--ssl]

Example:
    sharehome ~/shared --host 0.0.0.0 --port 8080
"""

import os
import sys
import asyncio
import logging
import argparse

from sharehome import logger
from sharehome._version import __version__
from sharehome.common.target import UniTarget, UniProto
from sharehome.common.unissl import UniSSL
from sharehome.share.multipart import UploadLimits
from sharehome.share.app import run_share_server_from_target


async def run_share_server(directory, host='127.0.0.1', port=8000, debug=False, use_ssl=False,
                           ssl_cert=None, ssl_key=None, max_file_size=None, max_files=None):
    """
    Run the share server until it is stopped.

    Args:
        directory (str): Root of the shared tree
        host (str): Host to bind to
        port (int): Port to bind to
        debug (bool): Enable per request tracing
        use_ssl (bool): Serve HTTPS
        ssl_cert (str): PEM certificate file, a self-signed one is generated when missing
        ssl_key (str): PEM private key file
        max_file_size (int): Maximum size of an uploaded file in bytes (None = unlimited)
        max_files (int): Maximum number of entries in an upload request (None = unlimited)
    """
    server_task = None
    try:
        log_callback = None
        if debug:
            async def log_callback(msg):
                print(f"[SHARE-SERVER] {msg}")

        if use_ssl:
            ssl_ctx = None
            if ssl_cert is not None:
                ssl_ctx = UniSSL(ssl_cert, ssl_key)
            target = UniTarget(host, port, UniProto.SERVER_SSL_TCP, ssl_ctx=ssl_ctx)
        else:
            target = UniTarget(host, port, UniProto.SERVER_TCP)

        limits = UploadLimits(max_file_size=max_file_size, max_entries=max_files)
        server_task, err = await run_share_server_from_target(
            target,
            directory,
            limits=limits,
            log_callback=log_callback
        )
        if err is not None:
            raise err
        print(f"Listening on {target.get_url()}")
        await server_task

    except asyncio.CancelledError:
        print("\nServer stopped by user")
    finally:
        if server_task is not None:
            server_task.cancel()
        print("Server stopped")


def main():
    """
    Main entry point for the share server.
    """
    parser = argparse.ArgumentParser(
        description='Share a directory over HTTP with listings, downloads and uploads',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s                                   # Share the home directory on 127.0.0.1:8000
  %(prog)s /srv/files                        # Share another directory
  %(prog)s --host 0.0.0.0 --port 9000        # Bind to all interfaces on a custom port
  %(prog)s --ssl                             # HTTPS with a generated self-signed certificate
  %(prog)s --ssl --ssl-cert c.pem --ssl-key k.pem
  %(prog)s --max-file-size 104857600         # Refuse uploads larger than 100MB
        ''')

    parser.add_argument(
        'directory',
        nargs='?',
        default=os.path.expanduser('~'),
        help='Directory to share (default: home directory)'
    )
    parser.add_argument(
        '--host', '-H',
        default='127.0.0.1',
        help='Host to bind to (default: 127.0.0.1)'
    )
    parser.add_argument(
        '--port', '-p',
        type=int,
        default=8000,
        help='Port to bind to (default: 8000)'
    )
    parser.add_argument(
        '--ssl',
        action='store_true',
        help='Serve HTTPS'
    )
    parser.add_argument(
        '--ssl-cert',
        help='PEM certificate file (default: generate a self-signed certificate)'
    )
    parser.add_argument(
        '--ssl-key',
        help='PEM private key file for --ssl-cert'
    )
    parser.add_argument(
        '--max-file-size',
        type=int,
        default=None,
        help='Maximum size of an uploaded file in bytes (default: unlimited)'
    )
    parser.add_argument(
        '--max-files',
        type=int,
        default=None,
        help='Maximum number of entries in one upload request (default: unlimited)'
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging (shows detailed server activity)'
    )
    parser.add_argument(
        '--version', '-v',
        action='version',
        version='sharehome %s' % __version__
    )

    args = parser.parse_args()

    if not os.path.exists(args.directory):
        print(f"Error: Directory '{args.directory}' does not exist")
        sys.exit(1)
    if not os.path.isdir(args.directory):
        print(f"Error: '{args.directory}' is not a directory")
        sys.exit(1)

    if args.port < 1 or args.port > 65535:
        print(f"Error: Port must be between 1 and 65535, got {args.port}")
        sys.exit(1)

    if args.max_file_size is not None and args.max_file_size < 0:
        print(f"Error: max-file-size can not be negative, got {args.max_file_size}")
        sys.exit(1)

    if args.max_files is not None and args.max_files < 1:
        print(f"Error: max-files must be at least 1, got {args.max_files}")
        sys.exit(1)

    if args.ssl_key is not None and args.ssl_cert is None:
        print("Error: --ssl-key requires --ssl-cert")
        sys.exit(1)

    if args.debug:
        logger.setLevel(logging.DEBUG)

    directory = os.path.abspath(args.directory)
    scheme = 'https' if args.ssl or args.ssl_cert else 'http'

    print("sharehome %s" % __version__)
    print("=" * 50)
    print(f"Directory: {directory}")
    print(f"Address: {scheme}://{args.host}:{args.port}")
    if args.debug:
        print("Debug: Enabled")
    if args.max_file_size is not None:
        print(f"Max file size: {args.max_file_size} bytes")
    else:
        print("Max file size: unlimited")
    if args.max_files is not None:
        print(f"Max files per request: {args.max_files}")
    print("=" * 50)

    try:
        asyncio.run(run_share_server(
            directory,
            args.host,
            args.port,
            args.debug,
            use_ssl=args.ssl or args.ssl_cert is not None,
            ssl_cert=args.ssl_cert,
            ssl_key=args.ssl_key,
            max_file_size=args.max_file_size,
            max_files=args.max_files
        ))
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print(f"Failed to start server: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
