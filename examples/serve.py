"""
HTTPS server whose certificate is reloaded on SIGHUP.

    python examples/serve.py --cert cert.pem --key cert.key --port 9090
    kill -HUP <pid>          # swap in whatever cert.pem/cert.key now contain
    curl -k https://localhost:9090/ping   # stops listening for SIGHUP

After /ping, SIGHUP gets its default disposition again and ends the server.
"""

import argparse
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from reloadable_certs import FileStore, ReloadManager, SignalTrigger, create_server_context

logger = logging.getLogger("reloadable_certs.example")


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--cert", default="cert.pem", help="PEM certificate chain")
    parser.add_argument("--key", default="cert.key", help="PEM private key")
    parser.add_argument("--port", type=int, default=9090)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # Fails fast if the initial certificate cannot be loaded
    store = FileStore(args.cert, args.key)

    manager = ReloadManager()
    manager.notify(store, SignalTrigger())

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            if self.path != "/ping":
                self.send_error(404)
                return
            manager.stop(store)
            body = b"pong!"
            self.send_response(200)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

    server = ThreadingHTTPServer(("", args.port), Handler)
    context = create_server_context(store)
    server.socket = context.wrap_socket(server.socket, server_side=True)

    logger.info(f"Serving HTTPS on port {args.port}")
    with manager:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.server_close()


if __name__ == "__main__":
    main()
