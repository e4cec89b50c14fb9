"""
Main NiceGUI application for ROUTEFLOW.

Two pages:
- '/'                  route list: create, drag to reorder and open routes
- '/routes/{route_id}' flow editor for one route: palette, node list,
                       connections and the node configuration panel

Configuration, storage and the project store are built once here and passed
to the pages; each editor page owns one EditorSession. A dropped connection flushes
pending edits; the session is closed when NiceGUI deletes the client after
the reconnect timeout.
"""

import logging
import sys

from dotenv import load_dotenv
from nicegui import Client, ui

from routeflow.config import load_app_config
from routeflow.editor import EditorSession
from routeflow.editor.panel import render_config_panel
from routeflow.models import Position
from routeflow.node_types import HTTP_METHODS
from routeflow.palette import NodePalette
from routeflow.project_store import ProjectStore
from routeflow.reorder import NEW_NODE, DragPayload
from routeflow.storage import RouteNotFoundError, create_backend

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

CONFIG = load_app_config()
STORAGE = create_backend(CONFIG)
PROJECT = ProjectStore(STORAGE, settings=CONFIG.settings, project_path=CONFIG.project_path)
PROJECT.load()
PALETTE = NodePalette()


# Reports the pointer offset inside the hovered row and the row's height.
ROW_DRAGOVER_JS = '''(e) => {
    e.preventDefault();
    const r = e.currentTarget.getBoundingClientRect();
    emit(e.clientY - r.top, r.height);
}'''


@ui.page('/')
def routes_page():
    ui.label('Routes').classes('text-2xl font-bold')
    ui.label('Drag a row to reorder.').classes('text-xs text-gray-400')
    drag = {'session': None}

    def start(index):
        drag['session'] = PROJECT.start_route_drag(index)

    def hover(index, e):
        session = drag['session']
        if session is None:
            return
        offset, height = e.args
        if session.hover(index, 0, height, offset):
            route_list.refresh()

    def drop():
        session = drag['session']
        if session is None:
            return
        drag['session'] = None
        PROJECT.finish_route_drag(session)
        route_list.refresh()

    @ui.refreshable
    def route_list():
        # While dragging, rows follow the live order of the drag session
        routes = drag['session'].items if drag['session'] else PROJECT.list_routes()
        if not routes:
            ui.label('No routes yet.').classes('text-gray-400')
        for index, route in enumerate(routes):
            row = ui.card().classes('w-full cursor-move').props('draggable')
            row.on('dragstart', lambda i=index: start(i))
            row.on('dragover', lambda e, i=index: hover(i, e), js_handler=ROW_DRAGOVER_JS, throttle=0.05)
            row.on('drop', drop)
            row.on('dragend', drop)
            with row:
                with ui.row().classes('w-full items-center gap-2'):
                    ui.icon('drag_indicator').classes('text-gray-400')
                    ui.label(route.method).classes('font-mono text-xs w-16')
                    ui.label(route.url).classes('font-mono flex-1')
                    ui.label(route.name).classes('text-gray-500')
                    ui.button('Edit flow', on_click=lambda r=route: ui.navigate.to(f'/routes/{r.id}')).props('dense')

                    def remove(r=route):
                        PROJECT.delete_route(r.id)
                        route_list.refresh()
                    ui.button(icon='delete', on_click=remove).props('flat dense color=negative')

    with ui.row().classes('items-end gap-2'):
        name_in = ui.input('Name').props('dense outlined')
        method_in = ui.select(list(HTTP_METHODS), value='GET', label='Method').classes('w-28')
        url_in = ui.input('URL', placeholder='/users').props('dense outlined')

        def create():
            url = (url_in.value or '').strip()
            if not url:
                ui.notify('A route needs a URL', type='warning')
                return
            PROJECT.add_route(name_in.value or url, method_in.value, url)
            name_in.value = ''
            url_in.value = ''
            route_list.refresh()
        ui.button('Add route', on_click=create)

    route_list()


@ui.page('/routes/{route_id}')
def editor_page(route_id: str, client: Client):
    session = EditorSession(STORAGE, delay=CONFIG.autosave_delay, model_names=PROJECT.model_names)
    try:
        route = session.open(route_id)
    except RouteNotFoundError:
        ui.label(f'Route {route_id} not found').classes('text-red-500')
        ui.button('Back to Routes', on_click=lambda: ui.navigate.to('/'))
        return

    # A dropped connection only flushes; the session closes when the client is deleted
    session.attach(client)

    status = ui.label('').classes('text-xs text-green-500 italic')
    session.sync.on_write(lambda r: status.set_text('Saved changes.'))

    def leave():
        session.close()
        ui.navigate.to('/')

    def save():
        if not session.is_open:
            ui.notify('This editor was closed; reload the page to keep editing', type='negative')
            return
        written = session.save()
        ui.notify('Saved' if written else 'No unsaved changes',
                  type='positive', position='bottom', timeout=1000)

    with ui.row().classes('w-full items-center justify-between'):
        with ui.row().classes('items-center gap-2'):
            ui.button('Back to Routes', icon='arrow_back', on_click=leave).props('flat')
            ui.label(f'{route.name} ({route.method} {route.url})').classes('text-lg font-semibold')
        ui.button('Save Changes', icon='save', on_click=save)

    @ui.refreshable
    def panel():
        render_config_panel(session, refresh=panel.refresh, on_close=lambda: select(None))

    @ui.refreshable
    def graph_view():
        nodes = session.store.nodes
        labels = {n.id: n.data.get('label', n.type) for n in nodes}
        ui.label('NODES').classes('text-xs font-bold text-gray-400')
        for index, node in enumerate(nodes):
            selected = node.id == session.store.selected_id
            with ui.row().classes('w-full items-center gap-2'):
                btn = ui.button(f'{labels[node.id]} [{node.type}]', on_click=lambda n=node: select(n.id))
                btn.props('flat' if not selected else 'unelevated')
                ui.button(icon='delete', on_click=lambda n=node: delete(n.id)).props('flat dense color=negative')

        ui.label('CONNECTIONS').classes('text-xs font-bold text-gray-400 mt-3')
        for edge in session.store.edges:
            with ui.row().classes('items-center gap-2'):
                ui.label(f'{labels.get(edge.source, edge.source)} → {labels.get(edge.target, edge.target)}')
                ui.button(icon='link_off', on_click=lambda e=edge: disconnect(e.id)).props('flat dense')

        if len(nodes) >= 2:
            options = {n.id: labels[n.id] for n in nodes}
            with ui.row().classes('items-end gap-2'):
                src = ui.select(options, label='From').classes('w-40')
                dst = ui.select(options, label='To').classes('w-40')

                def connect():
                    if src.value and dst.value:
                        session.connect(src.value, dst.value)
                        graph_view.refresh()
                ui.button('Connect', on_click=connect).props('dense')

        for warning in session.report().messages():
            ui.label(warning).classes('text-xs text-orange-500')

    def select(node_id):
        session.select(node_id)
        graph_view.refresh()
        panel.refresh()

    def delete(node_id):
        session.delete_node(node_id)
        graph_view.refresh()
        panel.refresh()

    def disconnect(edge_id):
        session.delete_edge(edge_id)
        graph_view.refresh()

    def add_from_palette(node_type):
        offset = 40 * len(session.store.nodes)
        session.handle_drop(DragPayload(kind=NEW_NODE, node_type=node_type),
                            Position(x=100 + offset, y=100 + offset))
        graph_view.refresh()

    with ui.row().classes('w-full no-wrap items-start gap-4'):
        with ui.column().classes('w-48 gap-1'):
            for category, entries in PALETTE.by_category().items():
                ui.label(category.upper()).classes('text-xs font-bold text-gray-400 mt-2')
                for entry in entries:
                    btn = ui.button(entry.name, icon=entry.icon,
                                    on_click=lambda t=entry.node_type: add_from_palette(t))
                    btn.props('flat dense align=left').classes('w-full')
                    if entry.description:
                        btn.tooltip(entry.description)
        with ui.column().classes('flex-1'):
            graph_view()
        panel()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='ROUTEFLOW',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
    )
