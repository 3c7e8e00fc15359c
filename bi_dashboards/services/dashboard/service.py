"""
DashboardService — copy, customize and query Looker dashboards.

One instance per request: it holds the injected ``BIClient``, the
resolved ``WorkflowConfig`` and (optionally) the ``DocumentStore``.
Nothing is cached between calls; every operation re-fetches what it
needs.

Multi-step mutations (``update_dashboard``) are a plain sequence of
remote calls with no rollback: a failure after step N leaves steps
1..N applied.

Usage::

    service = DashboardService(client, resolve_config(defaults, overrides))
    folder_id = await service.get_personal_folder_id()
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from bi_dashboards.core.errors import (
    WorkflowError,
    conflict,
    not_found,
    upstream_error,
    validation_error,
)
from bi_dashboards.models.looker import Dashboard, DashboardElement
from bi_dashboards.services.dashboard.config import WorkflowConfig
from bi_dashboards.services.dashboard.listeners import (
    filter_name_map_from_listens,
    listens_changed,
    merge_listens,
)
from bi_dashboards.services.dashboard.queries import (
    DATE_RANGES,
    TABLE_VIS_TYPES,
    build_custom_query,
    build_filter_payload,
    build_filter_values_query,
    build_latest_date_query,
    build_range_count_query,
    clone_with_filters,
    format_filter_values,
    is_date_dimension,
    measure_or_default,
    to_count,
)
from bi_dashboards.services.looker.protocol import BIClient
from bi_dashboards.services.storage.document_store import (
    DocumentStore,
    WriteMode,
    WriteResult,
)

logger = logging.getLogger(__name__)

FOLDER_FIELDS = "id,name,parent_id"
DASHBOARD_FIELDS = "id,title,folder_id,deleted"
SEARCH_PAGE_SIZE = 200

EXPORT_KEYWORD = "voucher"


def _normalize(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def _active(dashboards: List[Dashboard]) -> List[Dashboard]:
    """Drop soft-deleted dashboards."""
    return [d for d in dashboards if not d.deleted]


class DashboardService:
    """Dashboard copy/customization workflow over a ``BIClient``."""

    def __init__(
        self,
        client: Optional[BIClient],
        config: Optional[WorkflowConfig] = None,
        store: Optional[DocumentStore] = None,
    ) -> None:
        if client is None:
            raise ValueError("A BI client instance is required to use DashboardService.")
        self.client = client
        self.config = config or WorkflowConfig()
        self.store = store

    # ─────────────────────────────────────────────────────────
    #  FOLDERS
    # ─────────────────────────────────────────────────────────

    async def get_personal_folder_id(self) -> str:
        """Current user's personal folder id, else their home folder id."""
        me = await self.client.me()
        if me.personal_folder_id:
            return me.personal_folder_id
        if me.home_folder_id:
            return me.home_folder_id
        raise not_found(
            "Could not determine personal_folder_id or home_folder_id for the current user."
        )

    async def get_or_create_dashboard_folder(self, parent_folder_id: str) -> str:
        """Folder named ``config.folder_name`` under the parent; created if missing."""
        folder_name = self.config.folder_name
        if not folder_name:
            raise validation_error("folderName is not configured")

        existing = await self.client.search_folders(
            name=folder_name, parent_id=parent_folder_id,
        )
        if existing:
            return str(existing[0].id)

        created = await self.client.create_folder(folder_name, parent_folder_id)
        logger.info(
            f"[DashboardService] Created folder '{folder_name}' "
            f"under {parent_folder_id} → {created.id}"
        )
        return str(created.id)

    async def find_dashboard_in_nested_path(
        self,
        path_segments: Union[str, Sequence[str]],
        dashboard_title: str,
    ) -> str:
        """
        Resolve a folder path and return the id of the dashboard in it.

        ``path_segments`` is either ``"Shared/Team/Reports"`` or a list of
        segments. A leading ``shared`` segment stands for the current
        user's home folder. Every failure is re-raised as
        ``Failed to locate dashboard "<title>": <reason>`` with its kind
        unchanged.
        """
        try:
            folder_id = await self._resolve_folder_path(path_segments)
            return await self._find_dashboard_in_folder(folder_id, dashboard_title)
        except WorkflowError as exc:
            raise exc.wrap(f'Failed to locate dashboard "{dashboard_title}"') from exc
        except Exception as exc:
            raise upstream_error(
                f'Failed to locate dashboard "{dashboard_title}": {exc}'
            ) from exc

    async def _resolve_folder_path(self, path_segments: Union[str, Sequence[str]]) -> str:
        raw = path_segments.split("/") if isinstance(path_segments, str) else path_segments
        parts = [_normalize(part) for part in raw]
        parts = [part for part in parts if part]
        if not parts:
            raise validation_error("Path is empty")

        current_folder_id: Optional[str] = None

        for index, folder_name in enumerate(parts):
            if index == 0 and folder_name == "shared":
                me = await self.client.me()
                if not me.home_folder_id:
                    raise not_found("home_folder_id not found for current user")
                current_folder_id = me.home_folder_id
                continue

            folders = await self.client.search_folders(
                name=folder_name,
                parent_id=current_folder_id,
                fields=FOLDER_FIELDS,
                per_page=SEARCH_PAGE_SIZE,
            )
            matched = next(
                (f for f in folders if _normalize(f.name) == folder_name), None,
            )

            if matched is None:
                siblings = await self.client.search_folders(
                    parent_id=current_folder_id,
                    fields=FOLDER_FIELDS,
                    per_page=SEARCH_PAGE_SIZE,
                )
                available = ", ".join(f.name for f in siblings if f.name) or "None"
                raise not_found(f'Folder "{folder_name}" not found. Available: {available}')

            current_folder_id = matched.id

        if not current_folder_id:
            raise not_found("Failed to resolve folder path: no folder id")
        return current_folder_id

    async def _find_dashboard_in_folder(self, folder_id: str, dashboard_title: str) -> str:
        dashboards = await self.client.search_dashboards(
            folder_id=folder_id,
            title=dashboard_title.strip(),
            fields=DASHBOARD_FIELDS,
            per_page=SEARCH_PAGE_SIZE,
        )
        in_folder = [d for d in _active(dashboards) if d.folder_id == folder_id]

        if not in_folder:
            everything = await self.client.search_dashboards(
                folder_id=folder_id,
                fields=DASHBOARD_FIELDS,
                per_page=SEARCH_PAGE_SIZE,
            )
            titles = ", ".join(d.title for d in _active(everything) if d.title) or "None"
            raise not_found(
                f'Dashboard titled "{dashboard_title}" not found in folder ID '
                f'"{folder_id}". Available: {titles}'
            )

        wanted = _normalize(dashboard_title)
        exact = next((d for d in in_folder if _normalize(d.title) == wanted), None)
        dashboard = exact or in_folder[0]

        if not dashboard.id:
            raise upstream_error("Found dashboard has no ID")
        return dashboard.id

    # ─────────────────────────────────────────────────────────
    #  COPIES
    # ─────────────────────────────────────────────────────────

    async def ensure_dashboard_copy_in_folder(
        self,
        original_dashboard_id: str,
        folder_id: str,
        copy_title: str,
    ) -> str:
        """
        Find-or-create a copy of the original titled ``copy_title``.

        An active dashboard in ``folder_id`` whose trimmed title matches
        case-insensitively is reused (renamed only when the title differs
        exactly). Concurrent callers may still both create a copy.
        """
        dashboards = await self.client.search_dashboards(
            folder_id=folder_id,
            fields=DASHBOARD_FIELDS,
            per_page=SEARCH_PAGE_SIZE,
        )

        wanted = _normalize(copy_title)
        existing = next(
            (
                d for d in _active(dashboards)
                if d.id and d.folder_id == str(folder_id) and d.title is not None
                and _normalize(d.title) == wanted
            ),
            None,
        )

        if existing is not None:
            if existing.title != copy_title:
                await self.client.update_dashboard(existing.id, {"title": copy_title})
            return existing.id

        return await self._copy_and_rename(original_dashboard_id, folder_id, copy_title)

    async def save_dashboard_copy(
        self,
        current_dashboard_id: str,
        folder_id: str,
        custom_name: str,
    ) -> str:
        """Copy the dashboard under a new name; refuses to reuse an existing one."""
        existing = await self.client.search_dashboards(
            title=custom_name, folder_id=folder_id,
        )
        if _active(existing):
            raise conflict(f'A dashboard named "{custom_name}" already exists in the folder.')

        return await self._copy_and_rename(current_dashboard_id, folder_id, custom_name)

    async def _copy_and_rename(self, dashboard_id: str, folder_id: str, title: str) -> str:
        copied = await self.client.copy_dashboard(dashboard_id, folder_id)
        if not copied.id:
            raise upstream_error("Failed to copy dashboard: missing id")

        await self.client.update_dashboard(copied.id, {"title": title})
        logger.info(
            f"[DashboardService] Copied dashboard {dashboard_id} → {copied.id} "
            f"in folder {folder_id}"
        )
        return copied.id

    # ─────────────────────────────────────────────────────────
    #  CUSTOMIZATION
    # ─────────────────────────────────────────────────────────

    async def ensure_tile_listeners(
        self,
        dashboard_id: str,
        selected_dimensions: Sequence[str],
        filter_name_map: Mapping[str, str],
    ) -> int:
        """
        Make every filterable tile listen to the selected dimensions.

        Returns the number of tiles rewritten.
        """
        elements = await self.client.dashboard_dashboard_elements(dashboard_id)
        updated_count = 0

        for element in elements:
            filterable = element.filterable
            if filterable is None or element.result_maker is None:
                continue

            current = list(filterable.listen)
            updated = merge_listens(current, selected_dimensions, filter_name_map)
            if not listens_changed(current, updated):
                continue

            result_maker = element.result_maker.model_dump(exclude_none=True)
            result_maker["filterables"] = [{
                **filterable.model_dump(exclude_none=True),
                "listen": [listen.model_dump(exclude_none=True) for listen in updated],
            }]
            await self.client.update_dashboard_element(
                element.id, {"result_maker": result_maker},
            )
            updated_count += 1

        return updated_count

    async def update_dashboard(
        self,
        current_dashboard_id: str,
        original_dashboard_id: Optional[str],
        selected_columns: List[str],
        selected_filter_dimensions: List[str],
        filters_from_request: Mapping[str, Any],
        filter_name_map: Mapping[str, str],
    ) -> None:
        """
        Rewrite the configured tile's columns and reconcile dashboard filters.

        Steps: new query → repoint tile → delete unselected filters →
        update/create selected filters → sync tile listeners.
        """
        if current_dashboard_id == original_dashboard_id:
            raise validation_error("Original dashboard cannot be updated")

        dashboard = await self.client.dashboard(current_dashboard_id)
        tile = dashboard.find_element(self.config.tile_title)
        if tile is None or not tile.id:
            raise not_found("Tile not found or missing ID")

        query_id = tile.resolved_query_id
        if not query_id:
            raise not_found(
                "No query_id found: tile has neither query_id nor result_maker.query_id"
            )

        original_query = await self.client.query(query_id)
        new_query = await self.client.create_query(
            build_custom_query(
                original_query, selected_columns, force_table=bool(self.config.tile_title),
            )
        )
        await self.client.update_dashboard_element(tile.id, {"query_id": new_query.id})

        existing_filters = dashboard.dashboard_filters
        for dashboard_filter in existing_filters:
            if (dashboard_filter.dimension
                    and dashboard_filter.dimension not in selected_filter_dimensions):
                await self.client.delete_dashboard_filter(dashboard_filter.id)

        for dimension in selected_filter_dimensions:
            payload = build_filter_payload(
                current_dashboard_id,
                dimension,
                self.config,
                filters_from_request,
                filter_name_map,
            )
            match = next(
                (f for f in existing_filters if f.dimension == dimension), None,
            )
            if match is not None:
                await self.client.update_dashboard_filter(match.id, payload)
            else:
                await self.client.create_dashboard_filter(payload)

        await self.ensure_tile_listeners(
            current_dashboard_id, selected_filter_dimensions, filter_name_map,
        )
        logger.info(
            f"[DashboardService] Updated dashboard {current_dashboard_id}: "
            f"{len(selected_columns)} columns, {len(selected_filter_dimensions)} filters"
        )

    async def get_default_columns_and_filter_name_map(
        self,
        dashboard_id: str,
        tile_title: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Current columns of a tile and its ``field → filter name`` map.

        Returns:
            ``{"default_columns": [...], "filterNameMap": {...}}``
        """
        dashboard = await self.client.dashboard(dashboard_id)
        target_title = tile_title or self.config.tile_title
        tile = dashboard.find_element(target_title)
        if tile is None:
            raise not_found(f'Tile with title "{target_title}" not found in dashboard')

        query_id = tile.resolved_query_id
        if not query_id:
            raise not_found(f'No query_id found for tile titled "{target_title}"')

        original_query = await self.client.query(query_id)

        filterable = tile.filterable
        listens = filterable.listen if filterable is not None else []

        default_columns = list(original_query.fields or [])
        if self.config.tile_title:
            default_columns = list(dict.fromkeys(default_columns))

        return {
            "default_columns": default_columns,
            "filterNameMap": filter_name_map_from_listens(listens),
        }

    # ─────────────────────────────────────────────────────────
    #  FILTER VALUES & DATE RANGES
    # ─────────────────────────────────────────────────────────

    async def get_filter_values(
        self,
        dimensions: Sequence[str],
        selected_measure: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Top values per dimension as ``"value (count)"`` strings.

        Dimensions are queried concurrently; a failing dimension yields
        an empty list instead of failing the batch.
        """
        measure = measure_or_default(selected_measure)
        return list(await asyncio.gather(
            *(self._filter_values_for(dimension, measure) for dimension in dimensions)
        ))

    async def _filter_values_for(self, dimension: str, measure: str) -> Dict[str, Any]:
        if not dimension:
            return {"dimension": dimension, "values": []}

        try:
            query = await self.client.create_query(
                build_filter_values_query(self.config, dimension, measure)
            )
            rows = await self.client.run_query(query.id)
            values = format_filter_values(
                rows, dimension, measure, self.config.limit_results,
            )
        except Exception as exc:
            logger.warning(
                f"[DashboardService] Filter values for '{dimension}' failed: {exc}"
            )
            return {"dimension": dimension, "values": []}

        return {"dimension": dimension, "values": values}

    async def get_date_range_counts(
        self,
        dimensions: Sequence[str],
        selected_measure: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Row counts over five relative ranges for every date-named dimension.

        Without a configured date field nothing is queried and every
        dimension gets empty counts.
        """
        if not self.config.date_field:
            logger.warning(
                "[DashboardService] No dateField configured; skipping date range counts"
            )
            return [{"dimension": dimension, "counts": {}} for dimension in dimensions]

        latest_date = await self._latest_date()
        logger.info(
            f"[DashboardService] Latest '{self.config.date_field}' value: {latest_date}"
        )

        measure = measure_or_default(selected_measure)
        return list(await asyncio.gather(
            *(self._range_counts_for(dimension, measure) for dimension in dimensions)
        ))

    async def _latest_date(self) -> str:
        query = await self.client.create_query(build_latest_date_query(self.config))
        rows = await self.client.run_query(query.id)
        if rows and rows[0].get(self.config.date_field):
            return str(rows[0][self.config.date_field])
        return date.today().isoformat()

    async def _range_counts_for(self, dimension: str, measure: str) -> Dict[str, Any]:
        if not dimension or not is_date_dimension(dimension):
            return {"dimension": dimension, "counts": {}}

        counts: Dict[str, Union[int, float]] = {}
        for date_range in DATE_RANGES:
            try:
                query = await self.client.create_query(
                    build_range_count_query(self.config, dimension, measure, date_range)
                )
                rows = await self.client.run_query(query.id)
                counts[date_range] = to_count(rows[0].get(measure)) if rows else 0
            except Exception as exc:
                logger.warning(
                    f"[DashboardService] Count for '{dimension}' over "
                    f"'{date_range}' failed: {exc}"
                )
                counts[date_range] = 0

        return {"dimension": dimension, "counts": counts}

    # ─────────────────────────────────────────────────────────
    #  LISTINGS
    # ─────────────────────────────────────────────────────────

    async def get_dashboard_filters(self, dashboard_id: str) -> List[Dict[str, Any]]:
        dashboard = await self.client.dashboard(dashboard_id)
        return [
            {
                "name": f.name,
                "title": f.title,
                "type": f.type,
                "dimension": f.dimension,
                "allow_multiple_values": f.allow_multiple_values,
                "required": f.required,
                "default_value": f.default_value,
            }
            for f in dashboard.dashboard_filters
        ]

    async def get_dashboard_list_for_ui(
        self,
        folder_id: str,
        original_dashboard_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Active dashboards of a folder as ``{id, title}``.

        The original dashboard is appended when it lives elsewhere.
        """
        in_folder = await self.client.search_dashboards(folder_id=folder_id)
        dashboards = [
            {"id": str(d.id), "title": d.title} for d in _active(in_folder)
        ]

        if not original_dashboard_id:
            return dashboards
        if any(d["id"] == str(original_dashboard_id) for d in dashboards):
            return dashboards

        original = await self.client.dashboard(str(original_dashboard_id))
        if not original.id or not original.title:
            return dashboards

        return dashboards + [{"id": original.id, "title": original.title}]

    async def get_dashboard_tiles_with_results(
        self,
        dashboard_id: str,
        final_filters: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Re-run every data tile with ``final_filters`` applied.

        Table/grid tiles and tiles without a query are skipped. Tiles run
        concurrently; a failing tile is logged and left out.

        Returns:
            ``{"dashboard": {id, title, description?}, "tiles": [{title, query_id, data}]}``
        """
        filters = dict(final_filters or {})
        dashboard = await self.client.dashboard(dashboard_id)

        data_tiles = [
            tile for tile in dashboard.dashboard_elements
            if tile.resolved_query_id and tile.vis_type not in TABLE_VIS_TYPES
        ]
        results = await asyncio.gather(
            *(self._tile_with_results(tile, filters) for tile in data_tiles)
        )

        summary: Dict[str, Any] = {
            "id": str(dashboard.id or dashboard_id),
            "title": dashboard.title or "",
        }
        if dashboard.description is not None:
            summary["description"] = dashboard.description

        return {
            "dashboard": summary,
            "tiles": [result for result in results if result is not None],
        }

    async def _tile_with_results(
        self,
        tile: DashboardElement,
        filters: Mapping[str, Any],
    ) -> Optional[Dict[str, Any]]:
        query_id = tile.resolved_query_id
        try:
            original_query = await self.client.query(query_id)
            new_query = await self.client.create_query(
                clone_with_filters(original_query, filters)
            )
            rows = await self.client.run_query(new_query.id)
        except Exception as exc:
            logger.warning(
                f"[DashboardService] Failed to fetch data for tile '{tile.title}': {exc}"
            )
            return None

        return {
            "title": tile.title if tile.title else f"Tile {tile.id}",
            "query_id": str(query_id),
            "data": rows if isinstance(rows, list) else [],
        }

    # ─────────────────────────────────────────────────────────
    #  EXPLORE EXPORT
    # ─────────────────────────────────────────────────────────

    async def save_explore_measures(
        self,
        model_name: str,
        explore_name: str,
    ) -> Dict[str, Any]:
        """
        Export an explore's fields for every matching voucher dashboard.

        Writes ``explore_measures1_<explore>.json`` under the export
        directory and mirrors the same payload to the document store.

        Returns:
            ``{"filePath": str, "voucherDashboardIds": [...], "documentStore": mode}``
        """
        explore = await self.client.lookml_model_explore(model_name, explore_name)
        model_from_id, _, explore_from_id = (explore.id or "").partition("::")
        model_from_id = model_from_id or model_name
        explore_from_id = explore_from_id or explore_name

        field_set = explore.fields
        measures = field_set.measures if field_set is not None else []
        dimensions = field_set.dimensions if field_set is not None else []
        fields = [
            _export_field(m.suggest_dimension, m.measure is True) for m in measures
        ] + [
            _export_field(d.suggest_dimension, False) for d in dimensions
        ]

        voucher_ids = await self._voucher_dashboard_ids()
        if not voucher_ids:
            raise not_found(
                f'No matching dashboards found for marker "{self.config.export_marker}"'
            )

        folder_name = voucher_ids[0].split("::")[0]
        export = {
            folder_name: {
                f"dashboard{index}": {
                    "dashboard_id": dashboard_id,
                    "model_name": model_from_id,
                    "explore_": explore_from_id,
                    "fields": fields,
                }
                for index, dashboard_id in enumerate(voucher_ids, start=1)
            }
        }

        file_path = Path(self.config.export_dir) / f"explore_measures1_{explore_from_id}.json"
        await asyncio.to_thread(_write_export, file_path, export)
        logger.info(
            f"[DashboardService] Exported {len(voucher_ids)} dashboards to {file_path}"
        )

        snapshot = await self._write_snapshot(export)
        return {
            "filePath": str(file_path.resolve()),
            "voucherDashboardIds": voucher_ids,
            "documentStore": snapshot.mode.value,
        }

    async def _voucher_dashboard_ids(self) -> List[str]:
        marker = self.config.export_marker.lower()
        dashboards = await self.client.all_dashboards(fields="id,title")
        ids = []
        for dashboard in dashboards:
            lowered = (dashboard.id or "").lower()
            if dashboard.id and marker in lowered and EXPORT_KEYWORD in lowered:
                ids.append(dashboard.id)
        return ids

    async def _write_snapshot(self, payload: Dict[str, Any]) -> WriteResult:
        reference = self.config.snapshot_reference
        if self.store is None:
            logger.warning(
                f"[DashboardService] No document store; skipping write to '{reference}'"
            )
            return WriteResult(WriteMode.DEGRADED, reference, "no document store")
        return await self.store.upsert(reference, payload)


def _write_export(file_path: Path, export: Dict[str, Any]) -> None:
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(json.dumps(export, indent=2), encoding="utf-8")


def _export_field(name: Optional[str], is_measure: bool) -> Dict[str, Any]:
    return {
        "name": name,
        "is_grid_column": False,
        "is_filterable": False,
        "is_keyword_searchable": True,
        "measure": is_measure,
    }
