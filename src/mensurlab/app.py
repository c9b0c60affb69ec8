"""
Application shell and configuration for mensurlab.

Provides a singleton App with logging and configuration (from ./*.conf files
and the command line), and the command line program that computes the
impedance spectrum of a bore file.
"""

import argparse
import logging
import os
import sys

import configargparse
from prettytable import PrettyTable

from .acoustical_simulation import acoustical_simulation, convert_structured_to_canonical, get_sweep_frequencies
from .analysis import get_resonances
from .errors import MensurError
from .parse.formats import read_bore
from .sim.radiation import RADIATION_MODES

app = None

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARN,
    "error": logging.ERROR,
}

# handlers installed on the root logger by the current App
_installed_handlers = []


def init_app(args=None):
    """Create and set the global App. Call once at startup."""
    global app
    app = App(args=args)
    return app


def get_app():
    """Return the global App; initializes with default settings if not yet created."""
    if app is None:
        init_app()
    return app


def get_config():
    """Return the configuration dict from the global App."""
    return get_app().get_config()


def _add_handler(logger, handler):
    logger.addHandler(handler)
    _installed_handlers.append(handler)


def _str2bool(value):
    if isinstance(value, bool):
        return value
    if value.lower() in ("1", "true", "yes", "on"):
        return True
    if value.lower() in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got \"{value}\"")


class App:
    """
    Central app: logging and configuration.

    Args:
        args: Command line arguments, sys.argv[1:] when None.
    """

    def __init__(self, args=None):
        self.args = args
        self.config = None
        self.init_logging()

    def get_config(self):
        """Load and cache config (./*.conf files and command line)."""

        if self.config is None:
            p = configargparse.ArgParser(
                default_config_files=['./*.conf'],
                description="Acoustic input impedance of wind instrument bores.")

            p.add('file', nargs='?', default=None, help='bore file (.men or .xmen)')
            p.add('--config', is_config_file=True, help='config file path')
            p.add('-log_level', '--log_level', type=str, choices=list(LOG_LEVELS.keys()), default="info",
                  help='log level')
            p.add('-log_file', '--log_file', type=str, default=None, help='also write the log to this file')
            p.add('-max_freq', '--max_freq', type=float, default=2000.0, help='maximum frequency in Hz')
            p.add('-step_freq', '--step_freq', type=float, default=2.5, help='frequency step in Hz')
            p.add('-num_freq', '--num_freq', type=int, default=0,
                  help='number of frequencies, overrides step_freq if > 0')
            p.add('-temperature', '--temperature', type=float, default=24.0, help='air temperature in °C')
            p.add('-radiation', '--radiation', type=str, choices=list(RADIATION_MODES), default="pipe",
                  help='radiation impedance of the open end')
            p.add('-wall_loss', '--wall_loss', type=_str2bool, default=True, help='apply wall losses')
            p.add('-sec_var', '--sec_var', type=_str2bool, default=False,
                  help='use the section variation two-port')
            p.add('-workers', '--workers', type=int, default=1, help='number of worker threads')
            p.add('-branch', '--branch', action='append', default=None,
                  help='valve loop to route through (repeatable), overrides the file')
            p.add('-output', '--output', type=str, default=None,
                  help='output file, default is the bore file with suffix .imp (.men with -convert)')
            p.add('-dump', '--dump', action='store_true', help='print the resolved segments and exit')
            p.add('-convert', '--convert', action='store_true', help='write the canonical bore file and exit')
            p.add('-resonances', '--resonances', action='store_true', help='log the resonances of the spectrum')
            p.add('-resonance_threshold', '--resonance_threshold', type=float, default=None,
                  help='minimum level in dB of a listed resonance')
            p.add('-progress', '--progress', action='store_true', help='show a progress bar')

            args = sys.argv[1:] if self.args is None else self.args
            options = p.parse_known_args(args=args)[0]
            self.config = {}

            for key, value in vars(options).items():
                self.config[key] = value

        return self.config

    def init_logging(self):
        """Configure root logger: console and optional file, level from config."""
        logFormatter = logging.Formatter("%(asctime)s [%(levelname)s] {%(filename)s:%(lineno)d} %(message)s")
        rootLogger = logging.getLogger()

        # replace the handlers of a previous App
        for handler in _installed_handlers:
            rootLogger.removeHandler(handler)
            handler.close()
        _installed_handlers.clear()

        consoleHandler = logging.StreamHandler()
        consoleHandler.setFormatter(logFormatter)
        _add_handler(rootLogger, consoleHandler)

        config = self.get_config()
        if config["log_file"] is not None:
            fileHandler = logging.FileHandler(config["log_file"])
            fileHandler.setFormatter(logFormatter)
            _add_handler(rootLogger, fileHandler)

        rootLogger.setLevel(LOG_LEVELS[config["log_level"]])

    def start_message(self):
        """Log banner and command line."""
        msg = r'''
                                           _       _
 _ __ ___   ___ _ __  ___ _   _ _ __  | | __ _| |__
| '_ ` _ \ / _ \ '_ \/ __| | | | '__| | |/ _` | '_ \
| | | | | |  __/ | | \__ \ |_| | |    | | (_| | |_) |
|_| |_| |_|\___|_| |_|___/\__,_|_|    |_|\__,_|_.__/
'''
        msg += "Starting " + " ".join(sys.argv)
        logging.info(msg)

    def log_config(self):
        conf = self.get_config()
        conf_str = "Configuration:"
        for key in sorted(conf.keys()):
            conf_str += f"\n{key}: {conf[key]}"
        logging.debug(conf_str)


def segment_table(bore):
    """PrettyTable of the segments of a bore."""
    table = PrettyTable(["#", "front (mm)", "back (mm)", "length (mm)", "comment"])
    for i, s in enumerate(bore):
        table.add_row([i, s.front, s.back, s.length, s.comment])
    table.align["comment"] = "l"
    return table


def run(config):
    """Execute the command line program for a loaded configuration. Returns the exit status."""
    path = config["file"]
    if path is None:
        logging.error("no bore file given")
        return 2

    branches = config["branch"]

    if config["convert"]:
        convert_structured_to_canonical(path, config["output"], active_branches=branches)
        return 0

    bore = read_bore(path, active_branches=branches)
    logging.info(f"{path}: {len(bore)} segments, length {bore.length():.1f} mm, "
                 f"volume {bore.compute_volume() / 1000:.1f} cm³, {bore.termination} end")

    if config["dump"]:
        print(segment_table(bore))
        return 0

    frequencies = get_sweep_frequencies(config["max_freq"], config["step_freq"], config["num_freq"])
    result = acoustical_simulation(
        bore,
        frequencies,
        temperature=config["temperature"],
        radiation=config["radiation"],
        wall_loss=config["wall_loss"],
        section_variation=config["sec_var"],
        num_workers=config["workers"],
        progress=config["progress"],
    )

    output = config["output"]
    if output is None:
        output = os.path.splitext(path)[0] + ".imp"
    result.write(output)
    logging.info(f"wrote {len(result)} frequencies to {output}")

    if config["resonances"]:
        peaks = get_resonances(result.frequencies, result.magnitude_db,
                               threshold_db=config["resonance_threshold"])
        logging.info("Resonances:\n" + peaks.round(2).to_string(index=False))

    return 0


def main(args=None):
    """Entry point of python -m mensurlab."""
    app = init_app(args)
    app.start_message()
    app.log_config()
    try:
        return run(app.get_config())
    except (MensurError, OSError) as e:
        logging.error(f"{type(e).__name__}: {e}")
        return 1
