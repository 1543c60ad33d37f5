"""
HTTPS calls to the server: the JSON push used to register and long-poll, and the two binary downloads.

Every call opens its own session and closes it when done, so nothing is shared between calls and
aborting one call can't disturb another. The HTTP exchange runs on a short-lived background thread
while the caller waits on a future. Aborting a call completes that future straight away with
TransportCancelledError and closes the call's session; the worker doesn't wait for the server.
"""
import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError

import requests

from robotbridge.protocol.errors import EmptyBodyError, HTTPStatusError, MalformedResponseError, \
    TransportCancelledError, UnreachableError
from robotbridge.protocol.messages import BinaryArtifact, PushRequest, PushResponse, ServerEndpoint

logger = logging.getLogger(__name__)

HTTP_OK = 200
FILENAME_HEADER = 'Filename'

JSON_HEADERS = {
    'Content-Type': 'application/json',
    'Accept': 'application/json',
    'Accept-Charset': 'UTF-8'
}

BINARY_HEADERS = {
    'Content-Type': 'application/json',
    'Accept': 'application/octet-stream',
    'Accept-Charset': 'UTF-8'
}


class CancellationToken:
    """
    Lets the controlling thread abort the call the worker is blocked on.

    The worker resets the token before each long-poll. cancel() marks the token and aborts the
    call currently attached, if any. A call attached after cancel() and before the next reset()
    is aborted as soon as it starts.

    :param guard: optional callable checked every guard_interval seconds while a call is waited
        on. When it returns False the call is cancelled. The connector uses this to notice an
        unplugged device during a long-poll.
    """
    def __init__(self, guard=None, guard_interval=0.5):
        self.guard = guard
        self.guard_interval = guard_interval
        self._lock = threading.Lock()
        self._cancelled = False
        self._pending = None

    @property
    def cancelled(self):
        return self._cancelled

    def reset(self):
        with self._lock:
            self._cancelled = False

    def cancel(self):
        """
        :return: True if a call was in flight and has been aborted.
        """
        with self._lock:
            self._cancelled = True
            pending = self._pending
        return pending.cancel() if pending is not None else False

    def attach(self, call):
        with self._lock:
            self._pending = call
            cancelled = self._cancelled
        if cancelled:
            call.cancel()

    def detach(self, call):
        with self._lock:
            if self._pending is call:
                self._pending = None


class PendingCall:
    """ One HTTP exchange running on its own thread, with the session it uses. """

    def __init__(self, description, session):
        self.description = description
        self.session = session
        self.future = Future()
        self._lock = threading.Lock()

    def start(self, exchange):
        """ runs exchange(session) on a daemon thread. """
        t = threading.Thread(target=self._run, args=(exchange,), name=self.description, daemon=True)
        t.start()

    def _run(self, exchange):
        try:
            result = exchange(self.session)
        except Exception as e:
            self._complete(exception=e)
        else:
            self._complete(result=result)
        finally:
            self.close()

    def _complete(self, result=None, exception=None):
        with self._lock:
            if self.future.done():
                logger.debug("discarding the outcome of %s, it was cancelled", self.description)
                return False
            if exception is not None:
                self.future.set_exception(exception)
            else:
                self.future.set_result(result)
            return True

    def cancel(self):
        """
        Aborts the call. The waiting caller receives TransportCancelledError.
        :return: True if the call was still in flight
        """
        cancelled = self._complete(exception=TransportCancelledError("%s cancelled" % self.description))
        if cancelled:
            self.close()
        return cancelled

    @property
    def done(self):
        return self.future.done()

    def wait(self, token: CancellationToken=None):
        """ blocks until the call completes or is cancelled, returning the result or raising its error. """
        guard = token.guard if token is not None else None
        while guard is not None:
            try:
                return self.future.result(token.guard_interval)
            except FutureTimeoutError:
                if not guard():
                    logger.debug("guard failed while waiting on %s", self.description)
                    self.cancel()
        return self.future.result()

    def close(self):
        try:
            self.session.close()
        except Exception as e:
            logger.debug("error closing session for %s: %s", self.description, e)


class TransportClient:
    """
    Makes the calls to the server. The client keeps no protocol state; the token, role and
    telemetry all travel in the request passed in.

    :param connect_timeout: seconds allowed to establish a connection
    :param read_timeout: seconds allowed between bytes received. This must be longer than the
        time the server holds a long-poll open.
    :param verify: passed to requests to control TLS certificate verification
    :param session_factory: creates the session for each call
    """
    def __init__(self, connect_timeout=10.0, read_timeout=60.0, verify=True, session_factory=requests.Session):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.verify = verify
        self.session_factory = session_factory
        self._lock = threading.Lock()
        self._pending = set()
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def push(self, endpoint: ServerEndpoint, request: PushRequest, token: CancellationToken=None) -> PushResponse:
        """
        Sends a register or push request. The server holds a push for about ten seconds before it answers.
        """
        url = endpoint.snapshot().push
        body = request.to_json().encode('utf-8')
        response = self._call('push %s' % request.cmd, token, 'POST', url, body, JSON_HEADERS)
        try:
            text = response.content.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedResponseError("response is not UTF-8: %s" % e) from e
        return PushResponse.from_json(text)

    def download_program(self, endpoint: ServerEndpoint, request: PushRequest,
                         token: CancellationToken=None) -> BinaryArtifact:
        """ Fetches the compiled user program. """
        url = endpoint.snapshot().download
        body = request.to_json().encode('utf-8')
        response = self._call('download program', token, 'POST', url, body, BINARY_HEADERS)
        return self._artifact(response)

    def download_firmware(self, endpoint: ServerEndpoint, fw_file, token: CancellationToken=None) -> BinaryArtifact:
        """ Fetches a firmware file, named as the last part of the url (.../rest/update/<fw_file>). """
        url = endpoint.snapshot().update + '/' + fw_file
        response = self._call('download firmware %s' % fw_file, token, 'GET', url, None, BINARY_HEADERS)
        return self._artifact(response)

    def shutdown(self):
        """ Aborts any calls in flight and refuses new ones. Never raises. """
        with self._lock:
            self._closed = True
            pending = list(self._pending)
            self._pending.clear()
        for call in pending:
            try:
                call.cancel()
            except Exception as e:
                logger.debug("error cancelling %s during shutdown: %s", call.description, e)

    @staticmethod
    def _artifact(response):
        data = response.content
        if not data:
            raise EmptyBodyError("the server returned no content from %s" % response.url)
        return BinaryArtifact(data, response.headers.get(FILENAME_HEADER, ''))

    def _call(self, description, token, method, url, body, headers):
        """
        Runs one HTTP exchange, waiting until it completes or is cancelled.
        :return: the requests.Response, with the body already read
        """
        with self._lock:
            if self._closed:
                raise TransportCancelledError("transport is shut down")
            call = PendingCall(description, self.session_factory())
            self._pending.add(call)
        if token is not None:
            token.attach(call)
        try:
            if not call.done:
                call.start(lambda session: self._exchange(session, method, url, body, headers))
            response = call.wait(token)
        finally:
            if token is not None:
                token.detach(call)
            with self._lock:
                self._pending.discard(call)
        if response.status_code != HTTP_OK:
            raise HTTPStatusError(response.status_code)
        return response

    def _exchange(self, session, method, url, body, headers):
        logger.debug("%s %s", method, url)
        try:
            response = session.request(method, url, data=body, headers=headers,
                                       timeout=(self.connect_timeout, self.read_timeout), verify=self.verify)
            response.content    # read the whole body on this thread
            return response
        except requests.exceptions.RequestException as e:
            raise UnreachableError("%s %s failed: %s" % (method, url, e)) from e

