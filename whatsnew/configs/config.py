import os
from typing import Dict, Any

class Config:
	"""Configuration for the whatsnew release aggregator."""

	# GitHub REST Configuration
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	USER_AGENT = os.getenv("WHATSNEW_USER_AGENT", "whatsnew-release-aggregator/1.0")

	# AWS Bedrock Configuration
	AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
	BEDROCK_MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-sonnet-20240229-v1:0")
	BEDROCK_MAX_OUTPUT_TOKENS = int(os.getenv("BEDROCK_MAX_OUTPUT_TOKENS", "4000"))

	# AI enhancement
	AI_ENABLED = bool(int(os.getenv("AI_ENABLED", "0")))
	AI_MAX_INPUT_CHARS = int(os.getenv("AI_MAX_INPUT_CHARS", "12000"))
	AI_MAX_RUNTIME_S = int(os.getenv("AI_MAX_RUNTIME_S", "120"))
	AI_RETRY_MAX = int(os.getenv("AI_RETRY_MAX", "2"))
	AI_RETRY_BASE_SLEEP = float(os.getenv("AI_RETRY_BASE_SLEEP", "0.5"))

	# Pipeline thresholds
	QUALITY_MIN_CONFIDENCE = float(os.getenv("QUALITY_MIN_CONFIDENCE", "0.6"))
	MIN_ITEM_SCORE = float(os.getenv("MIN_ITEM_SCORE", "0.25"))
	COMMIT_COMPARE_FALLBACK_DEPTH = int(os.getenv("COMMIT_COMPARE_FALLBACK_DEPTH", "30"))
	TAGS_PER_PAGE = int(os.getenv("TAGS_PER_PAGE", "30"))

	NORMALIZE_COLLAPSE_SPACES = bool(int(os.getenv("NORMALIZE_COLLAPSE_SPACES", "1")))

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"user_agent": cls.USER_AGENT,
		}

	@classmethod
	def get_bedrock_config(cls) -> Dict[str, Any]:
		"""Get Bedrock configuration."""
		return {
			"region_name": cls.AWS_REGION,
			"model_id": cls.BEDROCK_MODEL_ID,
			"max_output_tokens": cls.BEDROCK_MAX_OUTPUT_TOKENS,
		}

	@classmethod
	def get_ai_config(cls) -> Dict[str, Any]:
		return {
			"enabled": cls.AI_ENABLED,
			"max_input_chars": cls.AI_MAX_INPUT_CHARS,
			"max_runtime_s": cls.AI_MAX_RUNTIME_S,
			"retry_max": cls.AI_RETRY_MAX,
			"retry_base_sleep": cls.AI_RETRY_BASE_SLEEP,
		}

	@classmethod
	def get_pipeline_config(cls) -> Dict[str, Any]:
		"""Get aggregation pipeline thresholds.

		Returns:
			Mapping with quality gate confidence, minimum item score, and commit history limits.
		"""
		return {
			"min_confidence": cls.QUALITY_MIN_CONFIDENCE,
			"min_item_score": cls.MIN_ITEM_SCORE,
			"compare_fallback_depth": cls.COMMIT_COMPARE_FALLBACK_DEPTH,
			"tags_per_page": cls.TAGS_PER_PAGE,
		}
