#!/usr/bin/env python3
"""
Flask API server for the Instability Atlas backend
Serves the instability catalog, runs the toy experiments and relays
LLM commentary requests (Gemini or a local Ollama server)
"""

import os
import asyncio

from dotenv import load_dotenv
from flask import Flask, request, jsonify
from flask_cors import CORS

from agents.HypothesisAgent import generate_experiment_hypothesis
from agents.InstabilityCardAgent import generate_instability_data
from agents.ScientificAnalysisAgent import analyze_instability
from agents.StressTestAgent import generate_stress_test_analysis
from agents.UniversalSimulationAgent import run_universal_simulation
from experiments.registry import list_components, run_component
from tools.catalog import get_instability, list_domains, list_instabilities, validate_instability
from tools.settings import get_llm_settings

load_dotenv()

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend


def request_settings(data):
    """LLM settings from the environment, with the request's optional 'llm' overrides applied."""
    overrides = (data or {}).get('llm')
    if overrides is not None and not isinstance(overrides, dict):
        raise ValueError("'llm' must be an object")
    return get_llm_settings().with_overrides(overrides)


@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    return jsonify({'status': 'healthy'}), 200


@app.route('/api/instabilities', methods=['GET'])
def list_instabilities_endpoint():
    """
    List catalog records

    Query: optional 'domain' substring filter
    Returns: JSON with the matching records and the known domains
    """
    domain = request.args.get('domain')
    return jsonify({
        'success': True,
        'result': list_instabilities(domain),
        'domains': list_domains()
    }), 200


@app.route('/api/instabilities/<instability_id>', methods=['GET'])
def get_instability_endpoint(instability_id):
    """Return one catalog record, 404 if unknown"""
    try:
        return jsonify({'success': True, 'result': get_instability(instability_id)}), 200
    except KeyError:
        return jsonify({'error': f'Unknown instability id: {instability_id}'}), 404


@app.route('/api/analyze-instability', methods=['POST'])
def analyze_instability_endpoint():
    """
    Endpoint to generate the structured scientific analysis of an instability

    Expects: JSON with 'instability_id' (catalog) or 'instability' (full record), optional 'llm'
    Returns: JSON with diagnosis, scientific_proposal, falsifiability and groundingSources
    """
    try:
        data = request.get_json(silent=True)

        if not data:
            return jsonify({'error': 'No data provided'}), 400

        if 'instability_id' in data:
            try:
                instability = get_instability(data['instability_id'])
            except KeyError:
                return jsonify({'error': f"Unknown instability id: {data['instability_id']}"}), 404
        elif 'instability' in data:
            instability = data['instability']
            try:
                validate_instability(instability)
            except (TypeError, ValueError) as e:
                return jsonify({'error': f'Invalid instability: {e}'}), 400
        else:
            return jsonify({'error': 'No instability_id or instability provided'}), 400

        settings = request_settings(data)

        print(f"Analyzing instability {instability['id']} with {settings.provider}...", flush=True)
        try:
            analysis = asyncio.run(analyze_instability(instability, settings))
        except Exception as e:
            print(f"Error analyzing instability: {e}", flush=True)
            return jsonify({
                'error': f'Failed to analyze instability: {str(e)}'
            }), 500

        return jsonify({
            'success': True,
            'result': analysis
        }), 200

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        print(f"Error in analyze_instability endpoint: {e}", flush=True)
        return jsonify({
            'error': f'Server error: {str(e)}'
        }), 500


@app.route('/api/run-simulation', methods=['POST'])
def run_simulation_endpoint():
    """
    Endpoint to run an LLM-simulated critical experiment

    Expects: JSON with 'instability_name' and 'experiment_proposal', optional 'llm'
    Returns: JSON with logs, outcome and verdict (a FAIL verdict on provider errors)
    """
    try:
        data = request.get_json(silent=True)

        if not data:
            return jsonify({'error': 'No data provided'}), 400

        if not data.get('instability_name'):
            return jsonify({'error': 'No instability_name provided'}), 400

        if not data.get('experiment_proposal'):
            return jsonify({'error': 'No experiment_proposal provided'}), 400

        settings = request_settings(data)

        print(f"Running universal simulation for {data['instability_name']}...", flush=True)
        result = asyncio.run(run_universal_simulation(
            data['instability_name'],
            data['experiment_proposal'],
            settings
        ))

        return jsonify({
            'success': True,
            'result': result
        }), 200

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        print(f"Error in run_simulation endpoint: {e}", flush=True)
        return jsonify({
            'error': f'Server error: {str(e)}'
        }), 500


@app.route('/api/stress-test', methods=['POST'])
def stress_test_endpoint():
    """
    Endpoint to generate a falsifiability analysis of experiment results

    Expects: JSON with 'experiment_name' and 'results', optional 'meta' and 'llm'
    Returns: JSON with analysis and falsifiability, 502 if the provider gave nothing usable
    """
    try:
        data = request.get_json(silent=True)

        if not data:
            return jsonify({'error': 'No data provided'}), 400

        if not data.get('experiment_name'):
            return jsonify({'error': 'No experiment_name provided'}), 400

        if not isinstance(data.get('results'), dict):
            return jsonify({'error': 'No results object provided'}), 400

        settings = request_settings(data)

        print(f"Generating stress test analysis for {data['experiment_name']}...", flush=True)
        result = asyncio.run(generate_stress_test_analysis(
            data['experiment_name'],
            data['results'],
            settings,
            data.get('meta')
        ))

        if result is None:
            return jsonify({'error': 'Stress test analysis failed'}), 502

        return jsonify({
            'success': True,
            'result': result
        }), 200

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        print(f"Error in stress_test endpoint: {e}", flush=True)
        return jsonify({
            'error': f'Server error: {str(e)}'
        }), 500


@app.route('/api/experiment-hypothesis', methods=['POST'])
def experiment_hypothesis_endpoint():
    """
    Endpoint to generate free-text commentary on experiment results

    Expects: JSON with 'experiment_name' and 'results', optional 'llm'
    Returns: JSON with hypothesis text
    """
    try:
        data = request.get_json(silent=True)

        if not data:
            return jsonify({'error': 'No data provided'}), 400

        if not data.get('experiment_name'):
            return jsonify({'error': 'No experiment_name provided'}), 400

        if not isinstance(data.get('results'), dict):
            return jsonify({'error': 'No results object provided'}), 400

        settings = request_settings(data)
        hypothesis = asyncio.run(generate_experiment_hypothesis(data['experiment_name'], data['results'], settings))

        return jsonify({
            'success': True,
            'result': {'hypothesis': hypothesis}
        }), 200

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        print(f"Error in experiment_hypothesis endpoint: {e}", flush=True)
        return jsonify({
            'error': f'Server error: {str(e)}'
        }), 500


@app.route('/api/generate-instability', methods=['POST'])
def generate_instability_endpoint():
    """
    Endpoint to draft a new instability card for a topic

    Expects: JSON with 'topic', optional 'llm'
    Returns: JSON with the generated instability record
    """
    try:
        data = request.get_json(silent=True)

        if not data:
            return jsonify({'error': 'No data provided'}), 400

        topic = str(data.get('topic', '')).strip()
        if not topic:
            return jsonify({'error': 'No topic provided'}), 400

        settings = request_settings(data)

        print(f"Generating instability card for '{topic}'...", flush=True)
        card = asyncio.run(generate_instability_data(topic, settings))

        return jsonify({
            'success': True,
            'result': card
        }), 200

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        print(f"Error in generate_instability endpoint: {e}", flush=True)
        return jsonify({
            'error': f'Server error: {str(e)}'
        }), 500


@app.route('/api/experiments', methods=['GET'])
def list_experiments_endpoint():
    """List runnable experiment components"""
    return jsonify({'success': True, 'result': list_components()}), 200


@app.route('/api/experiments/<component>/run', methods=['POST'])
def run_experiment_endpoint(component):
    """
    Endpoint to run one experiment to completion

    Expects: optional JSON with 'params', 'commentary' (default true) and 'llm'
    Returns: JSON with the experiment result, frame count and commentary
    """
    try:
        data = request.get_json(silent=True) or {}

        if component not in list_components():
            return jsonify({'error': f'Unknown experiment component: {component}'}), 404

        params = data.get('params') or {}
        if not isinstance(params, dict):
            return jsonify({'error': "'params' must be an object"}), 400

        commentary = data.get('commentary', True)
        if not isinstance(commentary, bool):
            return jsonify({'error': "'commentary' must be a boolean"}), 400

        settings = request_settings(data)

        print(f"[API] Running experiment {component} with params {params}", flush=True)
        try:
            output = asyncio.run(run_component(component, params, settings, commentary=commentary))
        except ValueError as e:
            return jsonify({'error': f'Invalid parameters: {str(e)}'}), 400

        print(f"[API] Experiment {component} finished after {output['frames']} frames", flush=True)
        return jsonify({
            'success': True,
            'result': output
        }), 200

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        print(f"[API] ERROR: Error running experiment {component}: {e}", flush=True)
        return jsonify({
            'error': f'Server error: {str(e)}'
        }), 500


if __name__ == '__main__':
    # Get port from environment or default to 5001 (5000 is often used by AirPlay on macOS)
    port = int(os.getenv('PORT', 5001))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    print(f"Starting Instability Atlas backend server on port {port}", flush=True)
    app.run(host='0.0.0.0', port=port, debug=debug)
