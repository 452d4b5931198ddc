import time


def wait_for(predicate, timeout=2.0, step=0.005):
    """Poll predicate until it returns True or the timeout expires"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(step)
    return predicate()
