import sys, os
import asyncio
import logging
import qasync
from PyQt6.QtWidgets import QApplication
from . import __app_name__, __version__
from .engine.timebase import AsyncioTimebase
from .logging_utils import setup_logging
from .runtime import RunOptions, build_session
from .session.workout import Workout
from .ui.workout_window import WorkoutWindow


def run_workout_window(workout: Workout, options: RunOptions) -> int:
    """Show the workout window and run ``workout`` on a qasync loop until it closes."""
    # Ensure logging is configured when launching the window directly
    log_mode_env = os.environ.get("GHOSTER_LOG_MODE")
    debug_mode = os.environ.get("GHOSTER_DEBUG", "0") in ("1", "true", "True", "yes")
    if not logging.getLogger().handlers:
        setup_logging(level="DEBUG" if debug_mode else "WARNING", add_console=True, log_mode=log_mode_env)
    log = logging.getLogger(__name__)

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName(__app_name__)
    app.setApplicationVersion(__version__)

    # Setup qasync event loop so the scheduler's asyncio timers run on the Qt thread
    loop = qasync.QEventLoop(app)
    asyncio.set_event_loop(loop)

    timebase = AsyncioTimebase(loop)
    bundle = build_session(workout, timebase, options)
    win = WorkoutWindow(bundle.controller, title=f"{__app_name__} - {workout.name}")
    win.closed_by_user.connect(win.close)
    app.lastWindowClosed.connect(loop.stop)
    win.show()

    loop.call_soon(bundle.controller.start)
    log.info("Workout window opened for '%s'", workout.name)

    # Run the event loop with qasync
    with loop:
        loop.run_forever()
    bundle.close()
    return 0
