"""Unit tests for analytics module."""

from unittest.mock import Mock, patch

import requests

from favortracker.analytics import send_completion_metric, send_count_metric, send_import_metric


def ok_response():
    mock_response = Mock()
    mock_response.raise_for_status = Mock()
    return mock_response


class TestSendCountMetric:
    """Test suite for send_count_metric function."""

    @patch('favortracker.analytics.requests.post')
    @patch('favortracker.analytics.time.time')
    def test_successful_metric_send(self, mock_time, mock_post):
        """Test successful metric submission to Datadog."""
        # Arrange
        mock_time.return_value = 1234567890
        mock_post.return_value = ok_response()

        # Act
        result = send_count_metric("character_created", "test-api-key")

        # Assert
        assert result is True
        mock_post.assert_called_once()

        payload = mock_post.call_args.kwargs['json']
        assert payload['series'][0]['metric'] == 'favortracker.character_created'
        assert payload['series'][0]['type'] == 'count'
        assert payload['series'][0]['points'] == [[1234567890, 1]]
        assert payload['series'][0]['tags'] == []

        headers = mock_post.call_args.kwargs['headers']
        assert headers['DD-API-KEY'] == 'test-api-key'
        assert headers['Content-Type'] == 'application/json'

    @patch('favortracker.analytics.requests.post')
    def test_missing_api_key_skips_send(self, mock_post):
        """Test that nothing is sent without an API key."""
        assert send_count_metric("character_created", "") is False
        mock_post.assert_not_called()

    @patch('favortracker.analytics.requests.post')
    def test_request_exception_returns_false(self, mock_post):
        """Test that request exceptions are caught and return False."""
        mock_post.side_effect = requests.exceptions.RequestException("Network error")

        assert send_count_metric("character_created", "test-api-key") is False

    @patch('favortracker.analytics.requests.post')
    def test_http_error_returns_false(self, mock_post):
        """Test that HTTP errors are caught and return False."""
        mock_response = Mock()
        mock_response.raise_for_status.side_effect = requests.exceptions.HTTPError("403 Forbidden")
        mock_post.return_value = mock_response

        assert send_count_metric("character_created", "invalid-api-key") is False

    @patch('favortracker.analytics.requests.post')
    def test_timeout_returns_false(self, mock_post):
        """Test that timeout errors are caught and return False."""
        mock_post.side_effect = requests.exceptions.Timeout("Request timeout")

        assert send_count_metric("character_created", "test-api-key") is False

    @patch('favortracker.analytics.requests.post')
    def test_unexpected_exception_returns_false(self, mock_post):
        """Test that unexpected exceptions are caught and return False."""
        mock_post.side_effect = Exception("Unexpected error")

        assert send_count_metric("character_created", "test-api-key") is False

    @patch('favortracker.analytics.requests.post')
    def test_timeout_parameter_set(self, mock_post):
        """Test that timeout parameter is set in request."""
        mock_post.return_value = ok_response()

        send_count_metric("character_created", "test-api-key")

        assert mock_post.call_args.kwargs['timeout'] == 5


class TestDomainMetrics:
    """Test the completion and import metric helpers."""

    @patch('favortracker.analytics.requests.post')
    def test_completion_metric_tags(self, mock_post):
        """Completion changes are tagged with difficulty and action."""
        mock_post.return_value = ok_response()

        for checked, action in ((True, "completed"), (False, "cleared")):
            assert send_completion_metric("elite", checked, "test-api-key") is True
            series = mock_post.call_args.kwargs['json']['series'][0]
            assert series['metric'] == 'favortracker.quest_completion_changed'
            assert series['tags'] == ['difficulty:elite', f'action:{action}']

    @patch('favortracker.analytics.requests.post')
    @patch('favortracker.analytics.time.time')
    def test_import_metric_value(self, mock_time, mock_post):
        """Import metrics report the number of imported quests."""
        mock_time.return_value = 1700000000
        mock_post.return_value = ok_response()

        assert send_import_metric(12, "test-api-key") is True
        series = mock_post.call_args.kwargs['json']['series'][0]
        assert series['metric'] == 'favortracker.completions_imported'
        assert series['points'] == [[1700000000, 12]]
