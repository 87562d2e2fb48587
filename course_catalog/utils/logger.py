"""
Colored console logging and the function-call tracing decorator
shared by the services and the entry point.
"""
import os
import logging
import colorlog
import functools
import inspect
import time

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def build_console_handler(level=logging.DEBUG):
    """
    Create a colorlog console handler with the detailed format
    @param level: int - Minimum level for the handler
    @returns: colorlog.StreamHandler - Configured handler
    """
    console_handler = colorlog.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s[%(asctime)s] %(levelname)-8s%(reset)s "
        "%(blue)s%(name)s %(bold_white)s%(funcName)s:%(lineno)d%(reset)s - "
        "%(message_log_color)s%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors=LOG_COLORS,
        secondary_log_colors={
            'message': {
                'DEBUG': 'cyan',
                'INFO': 'white',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        }
    ))
    return console_handler


class CustomLogger:
    """
    Custom logger class to handle detailed function logging with terminal output only
    """
    def __init__(self, name='CatalogTrace'):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        if not self.logger.handlers:
            self.logger.addHandler(build_console_handler())

    def log_function_call(self, func=None, *, log_params=True):
        """
        Decorator to log function calls with timing and parameters.
        Pass log_params=False for functions that receive secrets.
        """
        if func is None:
            return functools.partial(self.log_function_call, log_params=log_params)

        file_name = os.path.basename(inspect.getfile(func))
        line_no = inspect.getsourcelines(func)[1]

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            func_name = func.__qualname__

            caller_frame = inspect.currentframe().f_back
            caller_info = ""
            if caller_frame:
                caller_info = f"called from {caller_frame.f_code.co_name} at line {caller_frame.f_lineno}"

            self.logger.info(f"→ Entering {func_name} [{file_name}:{line_no}] {caller_info}")

            if log_params and (args or kwargs):
                params = []
                if args:
                    params.append(f"args: {args}")
                if kwargs:
                    params.append(f"kwargs: {kwargs}")
                self.logger.debug(f"Parameters: {', '.join(params)}")

            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                execution_time = (time.time() - start_time) * 1000
                self.logger.info(f"← Completed {func_name} in {execution_time:.2f}ms")
                return result

            except Exception as e:
                execution_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"✕ Error in {func_name} after {execution_time:.2f}ms: {str(e)}",
                    exc_info=True
                )
                raise

        return wrapper


custom_logger = CustomLogger()
