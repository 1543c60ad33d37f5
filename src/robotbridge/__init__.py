"""

Robot Bridge

Connects a robot attached over USB to a block programming server, so the server can
treat the robot as if it could reach it directly.

- Connector: serves one device role (primary controller, alternate controller, auxiliary board).
  Waits for the device, registers it with the server and long-polls for commands, on its own
  worker thread. Roles differ only by their ConnectorRole: a presence probe and the device actions.
- ConnectorSupervisor: probes the roles in priority order and starts the connector for the first
  device found. Only one connector runs at a time.
- CommandDispatch: turns a server command into an action - poll again, download and run a program,
  download and flash firmware, abort the running program, or disconnect.
- TransportClient: the HTTPS calls. A JSON push to register and long-poll, a POST to download the
  compiled program and a GET to download firmware.
- ServerEndpoint: the three server URLs, derived from one host:port address that the user can change.


## Threading

The supervisor runs on the main thread (or its own thread), the active connector on a worker thread.
The push and download calls block the worker only. Each call's HTTP exchange runs on a short-lived
thread of its own, so that the controlling thread can abort a long-poll through the connector's
CancellationToken without waiting for the server to answer.

State changes happen on the worker and are published as events. A UI that needs them on its own
thread registers its handlers on a QueuedEventSource and calls publish() from its event loop.

"""
