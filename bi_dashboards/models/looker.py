"""
Looker API entities — typed views over the JSON the API returns.

Every field is optional: the API omits fields freely depending on the
``fields=`` projection of a call. Unknown attributes are kept
(``extra="allow"``) so a Query can be re-posted without losing anything
this module does not enumerate.

Ids are normalised to ``str``; Looker returns numeric ids for some
resources and string ids for others (LookML dashboards use
``model::name``).
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict


def _id_to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _none_to_list(value: Any) -> Any:
    return value if isinstance(value, list) else []


LookerId = Annotated[Optional[str], BeforeValidator(_id_to_str)]


class LookerModel(BaseModel):
    """Base for every remote entity."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class User(LookerModel):
    id: LookerId = None
    personal_folder_id: LookerId = None
    home_folder_id: LookerId = None


class Folder(LookerModel):
    id: LookerId = None
    name: Optional[str] = None
    parent_id: LookerId = None


# ── Dashboard element internals ──────────────────────────────────

class Listen(LookerModel):
    """A tile's subscription to a dashboard filter."""
    dashboard_filter_name: Optional[str] = None
    field: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.dashboard_filter_name, self.field)


class Filterable(LookerModel):
    model: Optional[str] = None
    view: Optional[str] = None
    name: Optional[str] = None
    listen: Annotated[List[Listen], BeforeValidator(_none_to_list)] = []


class ResultMaker(LookerModel):
    query_id: LookerId = None
    vis_config: Optional[Dict[str, Any]] = None
    filterables: Annotated[List[Filterable], BeforeValidator(_none_to_list)] = []


class Query(LookerModel):
    id: LookerId = None
    client_id: Optional[str] = None
    slug: Optional[str] = None
    model: Optional[str] = None
    view: Optional[str] = None
    fields: Optional[List[str]] = None
    filters: Optional[Dict[str, Any]] = None
    sorts: Optional[List[str]] = None
    limit: LookerId = None
    column_limit: LookerId = None
    pivots: Optional[List[str]] = None
    total: Optional[bool] = None
    row_total: Optional[str] = None
    dynamic_fields: Optional[str] = None
    filter_expression: Optional[str] = None
    vis_config: Optional[Dict[str, Any]] = None


class DashboardElement(LookerModel):
    id: LookerId = None
    title: Optional[str] = None
    query_id: LookerId = None
    query: Optional[Query] = None
    result_maker: Optional[ResultMaker] = None

    @property
    def resolved_query_id(self) -> Optional[str]:
        """Direct ``query_id`` first, then the result maker's."""
        if self.query_id:
            return self.query_id
        if self.result_maker is not None and self.result_maker.query_id:
            return self.result_maker.query_id
        return None

    @property
    def filterable(self) -> Optional[Filterable]:
        """First filterable of the result maker, if any."""
        if self.result_maker is None or not self.result_maker.filterables:
            return None
        return self.result_maker.filterables[0]

    @property
    def vis_type(self) -> Optional[str]:
        if self.query is not None and self.query.vis_config:
            vis_type = self.query.vis_config.get("type")
            if vis_type:
                return vis_type
        if self.result_maker is not None and self.result_maker.vis_config:
            return self.result_maker.vis_config.get("type")
        return None


class DashboardFilter(LookerModel):
    id: LookerId = None
    dashboard_id: LookerId = None
    name: Optional[str] = None
    title: Optional[str] = None
    type: Optional[str] = None
    model: Optional[str] = None
    explore: Optional[str] = None
    dimension: Optional[str] = None
    row: Optional[int] = None
    default_value: Optional[str] = None
    allow_multiple_values: Optional[bool] = None
    required: Optional[bool] = None
    ui_config: Optional[Dict[str, Any]] = None
    listens_to_filters: Optional[List[str]] = None


class Dashboard(LookerModel):
    id: LookerId = None
    title: Optional[str] = None
    description: Optional[str] = None
    folder_id: LookerId = None
    deleted: Optional[bool] = None
    dashboard_elements: Annotated[
        List[DashboardElement], BeforeValidator(_none_to_list)
    ] = []
    dashboard_filters: Annotated[
        List[DashboardFilter], BeforeValidator(_none_to_list)
    ] = []

    def find_element(self, title: Optional[str]) -> Optional[DashboardElement]:
        """First tile whose title equals ``title`` exactly."""
        for element in self.dashboard_elements:
            if element.title == title:
                return element
        return None


# ── LookML explore ───────────────────────────────────────────────

class ExploreField(LookerModel):
    name: Optional[str] = None
    suggest_dimension: Optional[str] = None
    measure: Optional[bool] = None


class ExploreFieldSet(LookerModel):
    measures: Annotated[List[ExploreField], BeforeValidator(_none_to_list)] = []
    dimensions: Annotated[List[ExploreField], BeforeValidator(_none_to_list)] = []


class LookmlExplore(LookerModel):
    id: Optional[str] = None
    name: Optional[str] = None
    fields: Optional[ExploreFieldSet] = None
