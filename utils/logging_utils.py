import logging

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def configure_logging(level='INFO'):
    """Configure the root logger once for the whole process"""
    logging.basicConfig(level=level.upper() if isinstance(level, str) else level, format=LOG_FORMAT)
    # urllib3 logs every request at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def slim_cause(error, depth=0):
    """Summarize an exception chain for logging without dumping whole response bodies"""
    if error is None or depth > 2:
        return None
    summary = {'type': type(error).__name__, 'message': str(error)}
    status_code = getattr(error, 'status_code', None)
    if status_code is not None:
        summary['status_code'] = status_code
    cause = slim_cause(error.__cause__, depth + 1)
    if cause is not None:
        summary['cause'] = cause
    return summary
