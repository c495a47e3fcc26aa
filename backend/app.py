import atexit

import click
from flask import Flask, request, jsonify
from flask_cors import CORS
from typing import Optional
import logging

from config import DatabaseSettings, ServerSettings
from database import ConnectionFactory
from errors import DatabaseConnectionError, PersistenceError, ValidationError
from forms import ToolAction, submit
from repositories import Tool, ToolRepository, create_repository

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "No tool found."


def create_app(repository: Optional[ToolRepository] = None,
               settings: Optional[ServerSettings] = None) -> Flask:
    """Build the Flask app around a tool repository (created from the environment if not given)."""
    settings = settings or ServerSettings.from_env()

    app = Flask(__name__)
    CORS(app, origins=settings.cors_origins, supports_credentials=True)

    if repository is None:
        connections = ConnectionFactory(DatabaseSettings.from_env())
        atexit.register(connections.dispose)
        repository = create_repository(connections=connections)
    app.extensions['tool_repository'] = repository

    def get_repository() -> ToolRepository:
        return app.extensions['tool_repository']

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(DatabaseConnectionError)
    def handle_connection_error(e):
        logger.error(f"Database unavailable: {e}")
        return jsonify({'error': str(e)}), 503

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(e):
        return jsonify({'error': str(e)}), 500

    @app.cli.command('init-db')
    def init_db_command():
        """Create the tool table."""
        get_repository().init_schema()
        click.echo("Tool table created.")

    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'healthy'}, 200

    @app.route('/tools', methods=['GET'])
    def search_tools():
        """Search tools by name. A blank query returns no rows, like the search form."""
        name = request.args.get('name', '')
        if not name.strip():
            return jsonify([])
        tools = get_repository().search(name)
        return jsonify([tool.to_dict() for tool in tools])

    @app.route('/tools/<int:tool_id>', methods=['GET'])
    def get_tool(tool_id):
        tool = get_repository().get_by_id(tool_id)
        if tool is None:
            return jsonify({'error': NOT_FOUND_MESSAGE}), 404
        return jsonify(tool.to_dict())

    @app.route('/tools', methods=['POST'])
    def create_tool():
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            return jsonify({'error': 'No data provided'}), 400

        tool = Tool.from_dict({**data, 'id': 0})
        result = submit(get_repository(), ToolAction.CREATE, tool)
        if not result.ok:
            return jsonify({'error': result.message}), 500
        return jsonify(result.tool.to_dict()), 201

    @app.route('/tools/<int:tool_id>', methods=['PUT'])
    def update_tool(tool_id):
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            return jsonify({'error': 'No data provided'}), 400

        tool = Tool.from_dict({**data, 'id': tool_id})
        result = submit(get_repository(), ToolAction.UPDATE, tool)
        if not result.ok:
            return jsonify({'error': result.message}), 404
        return jsonify(result.tool.to_dict())

    @app.route('/tools/<int:tool_id>', methods=['DELETE'])
    def delete_tool(tool_id):
        repository = get_repository()
        tool = repository.get_by_id(tool_id)
        if tool is None:
            return jsonify({'error': NOT_FOUND_MESSAGE}), 404

        result = submit(repository, ToolAction.DELETE, tool)
        if not result.ok:
            return jsonify({'error': result.message}), 404
        return '', 204

    return app


if __name__ == '__main__':
    server = ServerSettings.from_env()
    logging.basicConfig(
        level=server.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    create_app(settings=server).run(debug=server.debug, host=server.host, port=server.port)
