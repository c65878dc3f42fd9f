from __future__ import annotations
from typing import Any, Iterable, Optional, Union

from .client import Lifecycle, Observer
from .codecs import Codecs
from .config import ObservableConfig, ObserverConfig
from .server import Observable
from .storage import StorageAdapter
from .transport import Transport


def _resolve_transport(transport: Union[str, Transport], origin: Optional[str], **transport_kwargs) -> Transport:
    if not isinstance(transport, str):
        return transport
    tlabel = transport.lower()
    if tlabel == "zyre":
        if not origin:
            raise ValueError("the zyre transport needs the local origin (peer name)")
        from .transports.zyre import ZyreTransport
        return ZyreTransport(origin, **transport_kwargs)
    raise ValueError(f"Unknown transport label: {transport}")


def init_observable(origins: Optional[Iterable[str]] = None,
                    *,
                    transport: Union[str, Transport],
                    origin: Optional[str] = None,
                    storage: Optional[StorageAdapter] = None,
                    codec: Union[str, Any] = "json",
                    config: Optional[ObservableConfig] = None,
                    auto_start: bool = True,
                    **transport_kwargs) -> Observable:
    """
    One-liner factory:
      init_observable(["https://app.example"], transport=hub.endpoint("https://store.example"))
      init_observable(transport="zyre", origin="store", config=ObservableConfig.from_env())

    - origins: candidate origins allowed to incorporate (ignored when `config` is given)
    - transport: Transport instance | "zyre"
    - origin: local origin, needed for label-built transports
    - storage: adapter backing get/set/delete (default: in-memory)
    - auto_start: start the transport immediately
    """
    cfg = config or ObservableConfig(origins=list(origins or []),
                                     codec=codec if isinstance(codec, str) else "json")
    codec_obj = Codecs.get(cfg.codec) if isinstance(codec, str) else codec

    t = _resolve_transport(transport, origin, **transport_kwargs)
    server = Observable(t, origins=cfg.origins, storage=storage, codec=codec_obj).init()
    if auto_start:
        t.start()
    return server


def init_observer(server_origin: Optional[str] = None,
                  *,
                  transport: Union[str, Transport],
                  origin: Optional[str] = None,
                  created: Optional[Lifecycle] = None,
                  destroyed: Optional[Lifecycle] = None,
                  config: Optional[ObserverConfig] = None,
                  heartbeat: bool = True,
                  auto_start: bool = True,
                  **options) -> Observer:
    """
    One-liner factory:
      init_observer("https://store.example", transport=hub.endpoint("https://app.example"),
                    created=print, heartbeat_interval=0.5)

    - server_origin: the single Observable origin to trust
    - created / destroyed: lifecycle callbacks receiving the Observer uuid
    - heartbeat: run the heartbeat thread (disable to drive `tick()` by hand)
    - **options: ObserverConfig fields (heartbeat_interval, request_timeout, codec...);
      anything else goes to the transport constructor
    """
    fields = set(ObserverConfig.model_fields)
    cfg_kwargs = {k: v for k, v in options.items() if k in fields}
    transport_kwargs = {k: v for k, v in options.items() if k not in fields}
    cfg = config or ObserverConfig(server_origin=server_origin, **cfg_kwargs)

    if isinstance(transport, str) and transport.lower() == "zyre":
        transport_kwargs.setdefault("expect", cfg.server_origin)
    t = _resolve_transport(transport, origin, **transport_kwargs)

    observer = Observer(t, cfg, created=created, destroyed=destroyed).init(heartbeat=heartbeat)
    if auto_start:
        t.start()
    return observer
