"""
Utility module for Supabase client construction and connectivity checks.
"""
import logging
from typing import Any, Dict
from supabase import Client, create_client

from course_catalog.config import Config
from course_catalog.errors import gateway_details

# Initialize logging
logger = logging.getLogger(__name__)


def create_supabase_client(config=Config) -> Client:
    """
    Create a Supabase client for one session context.
    Each client carries its own auth session, so contexts never share one.

    Args:
        config: Configuration object exposing SUPABASE_URL and SUPABASE_KEY

    Returns:
        Client: Supabase client instance
    """
    try:
        client = create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
        logger.debug("Supabase client initialized")
        return client
    except Exception as e:
        logger.error(f"Error initializing Supabase client: {str(e)}")
        raise


def check_connection(client: Client) -> Dict[str, Any]:
    """
    Check the tables the catalog depends on.

    Args:
        client (Client): Supabase client instance

    Returns:
        Dict[str, Any]: Per-table success flag, row count and error message
    """
    results = {}
    for table in ('categories', 'courses'):
        try:
            response = client.table(table).select('*').limit(1).execute()
            results[table] = {'success': True, 'count': len(response.data or []), 'error': None}
        except Exception as e:
            logger.error(f"Connection test failed for {table}: {str(e)}")
            results[table] = {'success': False, 'count': 0, 'error': gateway_details(e)['message']}
    return results
