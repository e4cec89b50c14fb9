"""
Node configuration panel.

Renders the form for the selected node with NiceGUI. One renderer per node
type tag, looked up once in PANEL_RENDERERS; tags without a renderer show
nothing. Every input writes through EditorSession, which marks the route
dirty and lets the synchronizer debounce the write.
"""

from typing import Callable, Dict

from nicegui import ui

from routeflow.editor.controller import EditorSession
from routeflow.node_types import (
    AUTH_TYPES,
    DB_OPERATIONS,
    FIELD_TYPES,
    HTTP_METHODS,
    OUTPUT_TYPES,
    VARIABLE_TYPES,
)


def _text(session: EditorSession, key: str, label: str, placeholder: str = '', multiline: bool = False):
    data = session.selected_node.data
    factory = ui.textarea if multiline else ui.input
    inp = factory(label, value=str(data.get(key, '') or ''), placeholder=placeholder).classes('w-full')
    inp.props('outlined dense')
    inp.on_value_change(lambda e: session.set_field(key, e.value))
    return inp


def _select(session: EditorSession, key: str, label: str, options, default: str):
    data = session.selected_node.data
    value = data.get(key) or default
    options = list(options)
    if value not in options:
        options.append(value)
    sel = ui.select(options, value=value, label=label).classes('w-full')
    sel.on_value_change(lambda e: session.set_field(key, e.value))
    return sel


def _field_list(session: EditorSession, key: str, title: str, refresh: Callable[[], None]):
    """Editable list of {name, type} items with an add row; blank names are not added."""
    with ui.row().classes('w-full items-center justify-between mt-3'):
        ui.label(title).classes('text-xs font-bold text-gray-400')

        def copy_json():
            ui.clipboard.write(session.fields_json(key))
            ui.notify(f'{title} copied as JSON')
        ui.button(icon='content_copy', on_click=copy_json).props('flat dense size=sm').tooltip('Copy as JSON')
    items = session.selected_node.data.get(key) or []

    for index, item in enumerate(items):
        with ui.row().classes('w-full items-center gap-1'):
            name_in = ui.input(value=item.get('name', ''), placeholder='Field name').classes('flex-1')
            name_in.props('dense')
            name_in.on_value_change(
                lambda e, i=index: session.set_field_item(key, i, 'name', e.value))
            type_sel = ui.select(list(FIELD_TYPES), value=item.get('type', 'string')).classes('w-24')
            type_sel.on_value_change(
                lambda e, i=index: session.set_field_item(key, i, 'type', e.value))

            def remove(i=index):
                session.remove_field_item(key, i)
                refresh()
            ui.button(icon='delete', on_click=remove).props('flat dense color=negative')

    with ui.row().classes('w-full items-center gap-1'):
        new_name = ui.input(placeholder='New field name').classes('flex-1').props('dense')
        new_type = ui.select(list(FIELD_TYPES), value='string').classes('w-24')

        def add():
            if session.append_field_item(key, new_name.value or '', new_type.value):
                refresh()
        ui.button(icon='add', on_click=add).props('dense')


def _render_db_common(session: EditorSession, refresh):
    models = session.model_names()
    _select(session, 'model', 'Model', [''] + models, '')
    _select(session, 'operation', 'Operation', DB_OPERATIONS, 'findMany')
    _text(session, 'query', 'SQL Query', 'SELECT * FROM table WHERE id = :id', multiline=True)
    _text(session, 'resultVar', 'Save Result In', 'result')


def _render_auth(session, refresh):
    _select(session, 'authType', 'Auth Type', AUTH_TYPES, 'bearer')
    _text(session, 'tokenVar', 'Token Variable', 'token')


def _render_url(session, refresh):
    _select(session, 'method', 'Method', HTTP_METHODS, 'GET')
    _text(session, 'path', 'Route Path', '/api/users/:id')
    _field_list(session, 'fields', 'BODY FIELDS', refresh)
    _field_list(session, 'queryFields', 'QUERY PARAMETERS', refresh)


def _render_output(session, refresh):
    _select(session, 'outputType', 'Output Type', OUTPUT_TYPES, 'definition')
    if (session.selected_node.data.get('outputType') or 'definition') == 'mockup':
        _text(session, 'responseRaw', 'Response Raw', 'Enter raw response here...', multiline=True)
    else:
        _field_list(session, 'fields', 'FIELDS', refresh)
    _text(session, 'statusCode', 'Status Code', '200')


def _render_variable(session, refresh):
    _text(session, 'name', 'Variable Name', 'myVariable')
    _select(session, 'type', 'Type', VARIABLE_TYPES, 'string')
    _text(session, 'defaultValue', 'Default Value', 'Default value')


def _render_logic(session, refresh):
    _text(session, 'code', 'Code', '// Write your code here', multiline=True)


def _render_db_insert(session, refresh):
    _render_db_common(session, refresh)
    _text(session, 'variables', 'Variables', 'name: string\nage: number', multiline=True)


def _render_db_update(session, refresh):
    _render_db_common(session, refresh)
    _text(session, 'idField', 'ID Field', 'id')
    _text(session, 'variables', 'Variables', 'name: string\nage: number', multiline=True)


def _render_db_delete(session, refresh):
    _render_db_common(session, refresh)
    _text(session, 'idField', 'ID Field', 'id')


PANEL_RENDERERS: Dict[str, Callable] = {
    'auth': _render_auth,
    'url': _render_url,
    'output': _render_output,
    'logic': _render_logic,
    'variable': _render_variable,
    'db-find': _render_db_common,
    'db-query': _render_db_common,
    'db-insert': _render_db_insert,
    'db-update': _render_db_update,
    'db-delete': _render_db_delete,
}


def render_config_panel(session: EditorSession, refresh: Callable[[], None], on_close: Callable[[], None]) -> None:
    """Render the panel for the selected node; nothing when no node is selected."""
    node = session.selected_node
    if node is None:
        return

    with ui.card().classes('w-80 gap-2'):
        with ui.row().classes('w-full items-center justify-between'):
            ui.label('Configure Node').classes('text-lg font-semibold')
            ui.button(icon='close', on_click=on_close).props('flat dense')
        _text(session, 'label', 'Label')

        renderer = PANEL_RENDERERS.get(node.type)
        if renderer:
            renderer(session, refresh)

        for problem in session.validate_selected():
            ui.label(problem).classes('text-xs text-orange-500')
