"""Routing: the documenting Router and the in-process RouteTable it registers into."""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple, Union, runtime_checkable
from urllib.parse import parse_qs

from .document import DocumentBuilder, to_openapi_path
from .models import HTTPMethod, Request, Response
from .specs import OperationSpec, PathSpec

logger = logging.getLogger(__name__)

Handler = Callable[[Request, Response], Any]


class RouteRegistrar(Protocol):
    """What a Router needs from the host router it forwards registrations to."""

    def register_route(self, method: HTTPMethod, path: str, handlers: List[Handler]) -> None:
        ...

    def use(self, prefix: str, handlers: List[Handler]) -> None:
        ...

    def mount(self, prefix: str, child: Any) -> None:
        ...


@runtime_checkable
class Mountable(Protocol):
    """Anything carrying its own document that can be folded into a parent."""

    def as_mountable(self) -> DocumentBuilder:
        ...


def _is_param(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


class RouteNode:
    """A node in the route trie.

    Static segments are matched before parameter segments (``{id}``). Parameter
    segments share one child per position; each route keeps its own parameter names
    next to its handlers.
    """

    def __init__(self):
        self.static_children: Dict[str, "RouteNode"] = {}
        self.param_child: Optional["RouteNode"] = None
        self.handlers: Dict[HTTPMethod, Tuple[List[Handler], List[str]]] = {}  # method -> (handlers, param_names)

    def add_route(self, segments: List[str], method: HTTPMethod, handlers: List[Handler],
                  param_names: List[str]) -> None:
        if not segments:
            self.handlers[method] = (handlers, param_names)
            return

        segment = segments[0]
        remaining = segments[1:]

        if _is_param(segment):
            if self.param_child is None:
                self.param_child = RouteNode()
            self.param_child.add_route(remaining, method, handlers, param_names)
        else:
            if segment not in self.static_children:
                self.static_children[segment] = RouteNode()
            self.static_children[segment].add_route(remaining, method, handlers, param_names)

    def find(self, segments: List[str], accept: Callable[["RouteNode"], bool]) -> Optional[Tuple["RouteNode", List[str]]]:
        """Find the first node for ``segments`` that ``accept`` approves, with the parameter values in order."""
        if not segments:
            return (self, []) if accept(self) else None

        segment = segments[0]
        remaining = segments[1:]

        if segment in self.static_children:
            result = self.static_children[segment].find(remaining, accept)
            if result:
                return result

        if self.param_child:
            result = self.param_child.find(remaining, accept)
            if result:
                node, values = result
                return node, [segment] + values

        return None


def split_path(path: str) -> List[str]:
    return [s for s in to_openapi_path(path).split("/") if s]


def normalize_path(prefix: str, path: str) -> str:
    """Combine a mount prefix and a route path without doubling slashes.

    Examples:
        normalize_path("/", "/users") -> "/users"
        normalize_path("/api/", "users") -> "/api/users"
    """
    if not prefix.startswith("/"):
        prefix = "/" + prefix
    if prefix != "/" and prefix.endswith("/"):
        prefix = prefix.rstrip("/")
    if not path.startswith("/"):
        path = "/" + path
    if prefix == "/":
        return path
    return prefix + path


def _prefix_matches(prefix: List[str], segments: List[str]) -> bool:
    if len(prefix) > len(segments):
        return False
    for expected, actual in zip(prefix, segments):
        if _is_param(expected):
            continue
        if expected != actual:
            return False
    return True


class RouteTable:
    """A minimal host router: handler chains per method and path, plus prefix middleware.

    Requests are dispatched in process with :meth:`dispatch`, which makes the whole
    library usable without a web server.
    """

    def __init__(self):
        self._routes: List[Tuple[str, HTTPMethod, List[Handler]]] = []
        self._middleware: List[Tuple[str, List[Handler]]] = []
        self._route_tree = RouteNode()

    def register_route(self, method: HTTPMethod, path: str, handlers: List[Handler]) -> None:
        handlers = list(handlers)
        segments = split_path(path)
        self._routes.append((path, method, handlers))
        self._route_tree.add_route(segments, method, handlers, [s[1:-1] for s in segments if _is_param(s)])

    def use(self, prefix: str, handlers: List[Handler]) -> None:
        self._middleware.append((prefix, list(handlers)))

    def mount(self, prefix: str, child: "RouteTable") -> None:
        """Copy the routes and middleware of ``child`` under ``prefix``."""
        for route_path, method, handlers in child.get_all_routes():
            self.register_route(method, normalize_path(prefix, route_path), handlers)
        for middleware_prefix, handlers in child._middleware:
            self.use(normalize_path(prefix, middleware_prefix), handlers)

    def get_all_routes(self) -> List[Tuple[str, HTTPMethod, List[Handler]]]:
        return list(self._routes)

    def match_route(self, path: str, method: HTTPMethod) -> Optional[Tuple[List[Handler], Dict[str, str]]]:
        """Match a request path to a handler chain.

        Returns:
            Tuple of (handlers, path_params) if matched, None otherwise
        """
        result = self._route_tree.find(split_path(path), lambda node: method in node.handlers)
        if result is None:
            return None
        node, values = result
        handlers, param_names = node.handlers[method]
        return handlers, dict(zip(param_names, values))

    def get_methods_for_path(self, path: str) -> List[HTTPMethod]:
        methods = [method for method in HTTPMethod if self.match_route(path, method)]
        return sorted(methods, key=lambda m: m.value)

    def middleware_for(self, path: str) -> List[Handler]:
        segments = split_path(path)
        chain: List[Handler] = []
        for prefix, handlers in self._middleware:
            if _prefix_matches(split_path(prefix), segments):
                chain.extend(handlers)
        return chain

    def dispatch(self, request: Request) -> Response:
        """Run a request through its middleware and route handlers."""
        path, _, query = request.path.partition("?")
        if query and request.query_params is None:
            parsed = parse_qs(query, keep_blank_values=True)
            request.query_params = {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}
        request.path = path

        response = Response(request=request)
        match = self.match_route(path, request.method)
        if match is None:
            allowed = self.get_methods_for_path(path)
            if allowed:
                response.set_header("Allow", ", ".join(m.value for m in allowed))
                return response.status(405).json({"error": "Method not allowed"})
            return response.status(404).json({"error": "Not found"})

        handlers, path_params = match
        request.path_params = path_params

        try:
            for handler in self.middleware_for(path) + handlers:
                result = handler(request, response)
                if response.finished:
                    break
                if result is not None:
                    response.json(result)
                    break
            if not response.finished:
                response.status(204).send()
        except Exception:
            logger.exception(f"Unhandled exception processing {request.method.value} {request.path}")
            return Response(status_code=500, request=request).json({"error": "Internal server error"})

        return response


def _flatten(items: Iterable[Any]) -> List[Any]:
    flat: List[Any] = []
    for item in items:
        if isinstance(item, (list, tuple)):
            flat.extend(_flatten(item))
        elif item is not None:
            flat.append(item)
    return flat


def _split_spec(args: Tuple[Any, ...], spec_type: type) -> Tuple[Any, Tuple[Any, ...]]:
    """Separate a leading declaration (model instance or dict) from handlers."""
    if args and (args[0] is None or isinstance(args[0], (dict, spec_type))):
        return args[0], args[1:]
    return None, args


def _verb(method: HTTPMethod):
    def declare(self, path: str, *args: Any):
        return self._declare(method, path, *args)

    declare.__name__ = method.value.lower()
    declare.__doc__ = (
        f"Declare a {method.value} operation: ``(path, spec?, *handlers)``. "
        f"Without handlers, returns a decorator."
    )
    return declare


class Router:
    """Registers routes on a host router and documents them as it goes.

    Every declaration is recorded in this router's DocumentBuilder before the handlers
    (with the validation guard in front when validation is declared) are forwarded to the
    registrar. Routers mount into applications or other routers with :meth:`use` or
    :meth:`mount`, which copies their documented paths under the mount prefix.
    """

    def __init__(
        self,
        spec: Union[PathSpec, Dict[str, Any], None] = None,
        registrar: Optional[RouteRegistrar] = None,
        builder: Optional[DocumentBuilder] = None,
    ):
        self.builder = builder if builder is not None else DocumentBuilder()
        self.registrar = registrar if registrar is not None else RouteTable()
        if spec is not None:
            self.builder.declare_path("/", spec)

    @property
    def document(self) -> Dict[str, Any]:
        return self.builder.document

    def as_mountable(self) -> DocumentBuilder:
        return self.builder

    get = _verb(HTTPMethod.GET)
    post = _verb(HTTPMethod.POST)
    put = _verb(HTTPMethod.PUT)
    delete = _verb(HTTPMethod.DELETE)
    patch = _verb(HTTPMethod.PATCH)
    options = _verb(HTTPMethod.OPTIONS)
    head = _verb(HTTPMethod.HEAD)
    trace = _verb(HTTPMethod.TRACE)

    def _declare(self, method: HTTPMethod, path: str, *args: Any):
        spec, rest = _split_spec(args, OperationSpec)
        handlers = _flatten(rest)
        if not handlers:
            def decorator(func: Handler) -> Handler:
                self._register(method, path, spec, [func])
                return func

            return decorator

        self._register(method, path, spec, handlers)
        return self

    def _register(self, method: HTTPMethod, path: str, spec: Any, handlers: List[Handler]) -> None:
        handlers = self.builder.declare_operation(path, method.value, spec, handlers)
        self.registrar.register_route(method, path, handlers)

    def use(self, *args: Any) -> "Router":
        """Attach middleware and mount sub-routers: ``(prefix?, path_spec?, *items)``.

        A path spec is declared on the prefix (default ``/``). Items with
        ``as_mountable()`` are mounted, everything else is registered as middleware.
        """
        prefix = "/"
        if args and isinstance(args[0], str):
            prefix, args = args[0], args[1:]
        spec, rest = _split_spec(args, PathSpec)
        if spec is not None:
            self.builder.declare_path(prefix, spec)

        for item in _flatten(rest):
            if isinstance(item, Mountable):
                self.mount(prefix, item)
            else:
                self.registrar.use(prefix, [item])
        return self

    def mount(self, prefix: str, child: Mountable) -> "Router":
        """Fold the document and routes of ``child`` in under ``prefix``."""
        self.builder.mount(prefix, child.as_mountable())
        self.registrar.mount(prefix, getattr(child, "registrar", child))
        return self

    def route(self, path: str) -> "PathRoute":
        """Return the eight verbs bound to ``path``, for chaining."""
        return PathRoute(self, path)

    def execute(self, request: Request) -> Response:
        """Dispatch a request in process (requires a registrar with ``dispatch``)."""
        return self.registrar.dispatch(request)


def _path_verb(method: HTTPMethod):
    def declare(self, *args: Any):
        result = self.router._declare(method, self.path, *args)
        return self if result is self.router else result

    declare.__name__ = method.value.lower()
    return declare


class PathRoute:
    """Verbs of a Router bound to one path."""

    def __init__(self, router: Router, path: str):
        self.router = router
        self.path = path

    get = _path_verb(HTTPMethod.GET)
    post = _path_verb(HTTPMethod.POST)
    put = _path_verb(HTTPMethod.PUT)
    delete = _path_verb(HTTPMethod.DELETE)
    patch = _path_verb(HTTPMethod.PATCH)
    options = _path_verb(HTTPMethod.OPTIONS)
    head = _path_verb(HTTPMethod.HEAD)
    trace = _path_verb(HTTPMethod.TRACE)
