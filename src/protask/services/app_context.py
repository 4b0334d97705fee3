"""Application context - one client's session, canonical set and derived views.

The context wires the services together and is passed around explicitly;
nothing in the core lives in module globals, so several contexts can run
side by side (one per test, or one per signed-in window).

Usage:
    app = AppContext(provider, store)
    await app.start()
    await app.session.log_in("me@example.com", "secret1")
    await app.gateway.create_task({"title": "Write report"})
    tasks = app.view(ViewSpec(sort_key=SortKey.PRIORITY))
    stats = app.stats()
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date

from protask.models import AppConfig, DashboardStats, Task, ViewSpec
from protask.repositories.repository import DocumentStore, IdentityProvider, StoragePaths
from protask.services.aggregation import compute_stats
from protask.services.mutation_gateway import MutationGateway
from protask.services.session_service import SessionController
from protask.services.task_store import TaskStore
from protask.services.view_pipeline import apply_view, unique_categories

VIEW_CACHE_SIZE = 16


class AppContext:
    """Holds the services for one client and caches derived views."""

    def __init__(
        self,
        provider: IdentityProvider,
        store: DocumentStore,
        config: AppConfig | None = None,
    ):
        self.config = config or AppConfig()
        self.paths = StoragePaths(app_id=self.config.app_id)

        self.session = SessionController(provider, store, self.paths)
        self.task_store = TaskStore(store, self.paths)
        self.task_store.attach(self.session)
        self.gateway = MutationGateway(self.session, self.task_store, store, self.paths)

        # Keyed by canonical-set version; any replacement invalidates them.
        self._view_cache: OrderedDict[tuple[int, ViewSpec, date], list[Task]] = OrderedDict()
        self._stats_cache: tuple[int, DashboardStats] | None = None
        self._categories_cache: tuple[int, list[str]] | None = None

    async def start(self) -> None:
        await self.session.start()

    def close(self) -> None:
        self.session.close()
        self.task_store.detach()
        self._view_cache.clear()

    @property
    def default_view(self) -> ViewSpec:
        return self.config.view.to_view_spec()

    def view(self, spec: ViewSpec | None = None, today: date | None = None) -> list[Task]:
        """Ordered, filtered tasks for ``spec`` over the current canonical set."""
        spec = spec or self.default_view
        today = today or date.today()
        version = self.task_store.version
        key = (version, spec, today)

        cached = self._view_cache.get(key)
        if cached is None:
            if any(k[0] != version for k in self._view_cache):
                self._view_cache.clear()
            cached = apply_view(self.task_store.tasks, spec, today=today)
            self._view_cache[key] = cached
            while len(self._view_cache) > VIEW_CACHE_SIZE:
                self._view_cache.popitem(last=False)
        else:
            self._view_cache.move_to_end(key)
        return list(cached)

    def stats(self) -> DashboardStats:
        version = self.task_store.version
        if self._stats_cache is None or self._stats_cache[0] != version:
            self._stats_cache = (version, compute_stats(self.task_store.tasks))
        return self._stats_cache[1].model_copy(deep=True)

    def categories(self) -> list[str]:
        version = self.task_store.version
        if self._categories_cache is None or self._categories_cache[0] != version:
            self._categories_cache = (version, unique_categories(self.task_store.tasks))
        return list(self._categories_cache[1])
