# -*- coding: utf-8 -*-
"""
twitterapi/dispatch
~~~~~~~~~~~~~~~~~~~

The delivery context for application callbacks.

Transports read from the network on their own worker threads, one per
request. Application handlers never run there: every progress and completion
callback is handed to a ``Dispatcher``, which runs them one at a time, in the
order they were dispatched, on a single thread of its own. Handlers may
therefore touch state that isn't thread-safe, as long as only handlers touch
it.
"""
import logging
import queue
import threading

log = logging.getLogger(__name__)

# Sentinel telling the delivery thread to exit.
_STOP = object()


class Dispatcher(object):
    """
    Runs callbacks serially on one dedicated thread.

    The thread is started lazily on the first dispatch and is a daemon
    thread, so an idle dispatcher never keeps the interpreter alive.

    :param name: (optional) The name given to the delivery thread.
    """
    def __init__(self, name='twitterapi-delivery'):
        self.name = name
        self._queue = queue.Queue()
        self._thread = None
        self._lock = threading.Lock()
        self._closed = False

    def dispatch(self, fn, *args):
        """
        Queues ``fn(*args)`` to run on the delivery thread and returns
        immediately.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Dispatcher %s is closed." % self.name)

            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run, name=self.name, daemon=True
                )
                self._thread.start()

            self._queue.put((fn, args))

    def join(self):
        """
        Blocks until every callback dispatched so far has run. Must not be
        called from a callback.
        """
        self._queue.join()

    def in_delivery_thread(self):
        """
        Whether the calling thread is this dispatcher's delivery thread.
        """
        return threading.current_thread() is self._thread

    def close(self):
        """
        Runs the callbacks already queued, then stops the delivery thread.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is not None:
                self._queue.put(_STOP)

        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return

                fn, args = item
                try:
                    fn(*args)
                except Exception:
                    # A failing handler must not stop delivery to the others.
                    log.exception("Unhandled exception in callback %r", fn)
            finally:
                self._queue.task_done()


# A process-wide dispatcher used by any client that isn't given its own.
_default_dispatcher = None
_default_lock = threading.Lock()


def default_dispatcher():
    """
    Returns the shared process-wide ``Dispatcher``, creating it if needed.
    """
    global _default_dispatcher

    with _default_lock:
        if _default_dispatcher is None:
            _default_dispatcher = Dispatcher()
        return _default_dispatcher
