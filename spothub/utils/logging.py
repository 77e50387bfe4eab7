"""
spothub/utils/logging.py
───────────────────────
Log setup shared by the web app and the CLI commands.

Request log lines carry the client IP, the URL and, for staff
endpoints, the id of the logged-in staff member, so a balance or stock
movement can be traced back to the terminal that triggered it.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import request, session, has_request_context

LINE_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(remote_addr)s | staff=%(staff_id)s | %(url)s | %(message)s'


class RequestFormatter(logging.Formatter):
    """Adds remote_addr, staff_id and url to each record; '-' outside a request."""
    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.remote_addr = request.remote_addr
            record.staff_id = session.get('staff_id', '-')
        else:
            record.url = '-'
            record.remote_addr = '-'
            record.staff_id = '-'
        return super().format(record)


def setup_logging(app):
    """
    Rotating file log at logs/app.log (5MB x 5) unless LOG_TO_FILE is off,
    plus stdout, both at INFO.
    """
    formatter = RequestFormatter(LINE_FORMAT)

    if app.config.get('LOG_TO_FILE', True):
        try:
            log_dir = os.path.join(app.root_path, '..', 'logs')
            os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=5 * 1024 * 1024,
                backupCount=5
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)
        except OSError:
            app.logger.warning("File logging disabled: log directory is not writable")

    # Stdout is what the hosting platform collects
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(logging.INFO)
    app.logger.addHandler(stream_handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info("Spot hub startup")
