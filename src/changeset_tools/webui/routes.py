"""Routes for the WebUI."""

import os
from flask import request, jsonify
from flask_socketio import emit

from changeset_tools.webui import app, socketio, get_webui_port, update_port
from changeset_tools.utils.settings import load_settings, save_settings
from changeset_tools.modules import (
    XMLParserError,
    ChangeValidationError,
    FileChange,
    DefaultFormatter,
    NullFormatter,
    REPAIR_RULES,
    parse_xml_string,
    prepare_xml,
    validate_xml_structure,
    apply_changes,
    preview_changes,
)
from changeset_tools.modules.repair import applied_rules


def _formatter(requested=None):
    """Pick the formatter from the request flag, falling back to settings."""
    enabled = load_settings()['auto_format'] if requested is None else bool(requested)
    return DefaultFormatter() if enabled else NullFormatter()


def _repo_path(data):
    return data.get('repoPath') or load_settings()['default_repo_path'] or os.getcwd()


def _change_to_json(change):
    return {
        'operation': change.operation_name,
        'path': change.file_path,
        'content': change.file_code,
        'description': change.file_summary,
        'status': 'Ready to apply',
    }


# Routes
@app.route('/')
def index():
    """Describe the service."""
    return jsonify({
        "name": "changeset-tools",
        "endpoints": ["/api/parse-xml", "/api/preview-xml", "/api/apply-xml",
                      "/api/format-xml", "/api/server-settings"],
    })


# API Routes
@app.route('/api/server-settings', methods=['GET', 'POST'])
def server_settings():
    """Get or update server settings."""
    if request.method == 'GET':
        settings = load_settings()
        settings['port'] = get_webui_port()
        return jsonify(settings)

    data = request.get_json(silent=True) or {}
    response = {"success": True, "restart_required": False}

    if 'port' in data:
        success, message, restart_required = update_port(data['port'])
        if not success:
            return jsonify({"success": False, "error": message}), 400
        response.update({"message": message, "restart_required": restart_required})

    updates = {key: data[key] for key in ('auto_format', 'default_repo_path', 'host') if key in data}
    if updates:
        save_settings(updates)

    response["settings"] = load_settings()
    return jsonify(response)


@app.route('/api/parse-xml', methods=['POST'])
def parse_xml():
    """Parse XML content into a list of changes."""
    data = request.get_json(silent=True) or {}
    xml_content = data.get('xml')

    if not xml_content:
        return jsonify({"success": False, "error": "No XML content provided"}), 400

    try:
        changes = parse_xml_string(xml_content)
    except XMLParserError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({
        "success": True,
        "changes": [_change_to_json(change) for change in changes],
        "changeCount": len(changes),
    })


@app.route('/api/preview-xml', methods=['POST'])
def preview_xml():
    """Preview what applying the XML would do."""
    data = request.get_json(silent=True) or {}
    xml_content = data.get('xml')

    if not xml_content:
        return jsonify({"success": False, "error": "No XML content provided"}), 400

    try:
        changes = parse_xml_string(xml_content)
    except XMLParserError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({"success": True, "previews": preview_changes(changes, _repo_path(data))})


@app.route('/api/apply-xml', methods=['POST'])
def apply_xml():
    """Apply XML changes, or an already parsed list of changes, to a repository."""
    data = request.get_json(silent=True) or {}
    xml_content = data.get('xml')
    raw_changes = data.get('changes')

    if not xml_content and not raw_changes:
        return jsonify({"success": False, "error": "No XML content provided"}), 400

    try:
        if xml_content:
            changes = parse_xml_string(xml_content)
        else:
            changes = [FileChange.from_dict(change) for change in raw_changes]
    except (XMLParserError, ChangeValidationError) as e:
        return jsonify({"success": False, "error": str(e)}), 400

    result = apply_changes(
        changes,
        _repo_path(data),
        test_mode=bool(data.get('dryRun', False)),
        formatter=_formatter(data.get('format')),
    )
    return jsonify(result.to_dict())


@app.route('/api/format-xml', methods=['POST'])
def format_xml():
    """Repair an XML document and report whether it now parses."""
    data = request.get_json(silent=True) or {}
    xml_content = data.get('xml')

    if not xml_content:
        return jsonify({"success": False, "error": "No XML content provided"}), 400

    is_valid, error_message = validate_xml_structure(xml_content)
    return jsonify({
        "success": True,
        "xml": prepare_xml(xml_content),
        "rules": [rule.value for rule, changed in applied_rules(xml_content) if changed],
        "knownRules": [rule.value for rule in REPAIR_RULES],
        "valid": is_valid,
        "error": error_message,
    })


@socketio.on('xml_parse')
def handle_xml_parse(data):
    """Handle XML parsing over the socket."""
    xml_string = (data or {}).get('xml')

    if not xml_string:
        emit('xml_error', {'message': 'No XML content provided'})
        return

    emit('xml_parse_start', {'length': len(xml_string)})

    try:
        changes = parse_xml_string(xml_string)
    except XMLParserError as e:
        emit('xml_error', {'message': f'Error parsing XML: {str(e)}'})
        return

    emit('xml_parse_complete', {
        "success": True,
        "changes": [_change_to_json(change) for change in changes],
        "changeCount": len(changes),
    })


@socketio.on('xml_apply')
def handle_xml_apply(data):
    """Handle XML changes application over the socket."""
    data = data or {}
    xml_string = data.get('xml')
    repo_path = data.get('repoPath')

    if not xml_string:
        emit('xml_error', {'message': 'No XML content provided'})
        return

    if not repo_path:
        emit('xml_error', {'message': 'No repository path provided'})
        return

    emit('xml_apply_start', {'repoPath': repo_path})

    try:
        changes = parse_xml_string(xml_string)
    except XMLParserError as e:
        emit('xml_error', {'message': f'Error parsing XML: {str(e)}'})
        return

    result = apply_changes(
        changes,
        repo_path,
        test_mode=bool(data.get('dryRun', False)),
        formatter=_formatter(data.get('format')),
    )
    emit('xml_apply_complete', result.to_dict())


# Error handlers
@app.errorhandler(404)
def page_not_found(e):
    """Handle 404 errors."""
    return jsonify({"success": False, "error": "Not found"}), 404


@app.errorhandler(500)
def server_error(e):
    """Handle 500 errors."""
    return jsonify({"success": False, "error": "Internal server error"}), 500
