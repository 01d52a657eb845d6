"""Serve the device simulator with uvicorn: ``python -m device_sim``."""
import argparse
import os

import uvicorn


def main(argv=None):
    parser = argparse.ArgumentParser(prog="device_sim", description="Simulated bulk device")
    parser.add_argument("--host", default=os.getenv("DEVICE_SIM_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("DEVICE_SIM_PORT", "8000")))
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args(argv)

    from device_sim.app import app

    config = uvicorn.Config(app, host=args.host, port=args.port, log_level=args.log_level)
    uvicorn.Server(config).run()


if __name__ == "__main__":
    main()
