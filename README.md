# devlb

devlb is a small TCP load balancer for local development. It keeps one
well-known port (say `:3000`) open on `127.0.0.1` and forwards every
connection to one of several backend ports, so you can run the same service
from several branches or worktrees at once and switch between them without
restarting anything that talks to it.

It is a library: you create and drive the listeners from Python.

## What it does

- **One listener per service.** `devlb.listener.ServiceListener` accepts
  connections on its listen port and bridges each one, in both directions, to
  the currently active backend.
- **Several backends, one active.** `add_backend(port, label, pid, log_file)`
  registers a backend; the first one registered becomes active. Removing the
  active backend with `remove_backend(port)` makes the first remaining one
  active, and `switch_backend(label)` moves new connections to another
  backend. `set_backend(port, label)` replaces all backends with one active
  backend and `clear_backend()` removes them all.
- **Health checks and failover.** A `devlb.healthcheck.HealthChecker` opens a
  TCP connection to each backend at a fixed interval; after a configured
  number of consecutive failures the backend is marked unhealthy. When a
  listener has a health checker and its active backend is unhealthy, new
  connections go to the first healthy other backend.
- **Friendly failures.** When there is no backend to use, or the backend
  cannot be reached, the listener reads the first bytes of the connection; if
  they look like an HTTP request the client gets a plain
  `503 Service Unavailable` naming the port and service. Otherwise the
  connection is closed (reset, when the backend could not be reached).
- **Port conflict diagnosis.** If the listen port is already in use,
  `start()` raises `OSError`, `is_blocked()` returns `True`, and on Linux
  `info().blocked_by` names the process holding the port, as
  `PID <pid> (<command>)`. `devlb.portinfo.find_port_owner(port)` does the
  lookup on its own.
- **Per-backend metrics.** `metrics()` returns a
  `devlb.metrics.MetricsStore` with total and active connections and bytes in
  (from clients) and out (from the backend) for every backend port.
- **Labels.** `devlb.label.detect_label("")` returns the current git branch,
  the short commit hash on a detached HEAD, or else the host name (or
  `"unknown"`); a non-empty argument is returned as is. `random_label()`
  produces names like `calm-fox`.
- **Terminal dashboard.** A live table of services, backends, health,
  connections and traffic, with keys to move, switch and refresh.

## Using it from Python

```python
from devlb.healthcheck import HealthChecker, default_health_config
from devlb.label import detect_label
from devlb.listener import ServiceListener

api = ServiceListener("api", 3000, health_checker=HealthChecker(default_health_config()))
api.start()

api.add_backend(3001, detect_label(""), 0, "")
api.add_backend(3002, "feature-x", 0, "")

api.switch_backend("feature-x")     # new connections now go to :3002
print(api.info())
print(api.metrics().get(3002))

api.stop_graceful(5.0)              # wait up to 5 s for open connections, then close them
```

`add_backend` raises `ValueError` for a port that is already registered, and
`switch_backend` raises `KeyError` for a label no backend has. `stop()` closes
the listener at once and leaves open connections alone.

`default_health_config()` gives a 5 second interval, a 1 second connect
timeout and three failures before a backend counts as unhealthy; pass your own
`HealthConfig(interval=..., timeout=..., unhealthy_after=...)` (in seconds)
to change them. The health checker is given when the listener is created; it
starts with `start()` and stops with `stop()` or `stop_graceful()`.

## Dashboard

`devlb.dashboard.run(client)` opens the dashboard in the terminal and returns
the final `Model` when you quit. The client is any object with:

- `status()`, returning an object whose `entries` attribute lists the
  services. Each entry has `service`, `listen_port` and `backends`; each
  backend has `port`, `label`, `active`, `healthy` (`True`, `False` or
  `None`), `active_conns`, `bytes_in` and `bytes_out`.
- `switch(listen_port, label)`, which makes that backend active.

The dashboard fetches the status every second; an exception raised by the
client is shown on screen.

| Key                  | Action                              |
| -------------------- | ----------------------------------- |
| `↑` / `k`            | move up                             |
| `↓` / `j`            | move down                           |
| `s`                  | make the selected backend active    |
| `r`                  | refresh now                         |
| `q` / `esc` / Ctrl-C | quit                                |

The table itself is available as `devlb.render.render_table(entries, cursor,
width)`, with `format_bytes` and `flatten_entries` alongside it.

## What it does not do

devlb has no command-line program and no background service: nothing keeps
listeners running for you, reads a configuration file of services, or
answers the dashboard's `status()` and `switch()` calls. You supply the
client the dashboard talks to, and you create, start and stop the listeners
yourself.

## Requirements

Python 3.10 or later, and `blessed` for the dashboard. Finding the owner of a
busy port reads `/proc` and works on Linux only; elsewhere the listener still
reports the conflict but cannot name the process. `detect_label` runs `git`
when it is installed.