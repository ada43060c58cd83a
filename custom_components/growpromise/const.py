# File: const.py
"""Constants for the GrowPromise integration.

This file centralizes configuration keys, defaults, storage field names,
domain event signals and service names for consistency across the integration.
"""

import logging

import homeassistant.util.dt as dt_util

from .utils import dt_utils


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    global DEFAULT_TIME_ZONE
    DEFAULT_TIME_ZONE = dt_util.get_time_zone(hass.config.time_zone)
    if DEFAULT_TIME_ZONE is not None:
        dt_utils.set_default_timezone(DEFAULT_TIME_ZONE)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
# Integration Name
GROWPROMISE_TITLE = "GrowPromise"

# Integration Domain
DOMAIN = "growpromise"

# Logger
LOGGER = logging.getLogger(__package__)

# Coordinator
COORDINATOR_SUFFIX = "_coordinator"

# Storage and Versioning
# Client-side cache and pending-action queue
STORAGE_KEY = "growpromise_client"
# Authoritative household data
REMOTE_STORAGE_KEY = "growpromise_data"
STORAGE_VERSION = 1

# Default timezone: initially None, to be set once hass is available.
DEFAULT_TIME_ZONE = None

# Update Interval (minutes between sync passes)
DEFAULT_UPDATE_INTERVAL = 5

# ------------------------------------------------------------------------------------------------
# Configuration Keys (config entry options)
# ------------------------------------------------------------------------------------------------
CONF_APPROVAL_EXPERIENCE = "approval_experience"
CONF_WATERING_HEALTH_GAIN = "watering_health_gain"
CONF_INITIAL_HEALTH = "initial_health"
CONF_EXPERIENCE_TO_ADVANCE = "experience_to_advance"
CONF_STICKER_IMAGE_REF = "sticker_image_ref"
CONF_UPDATE_INTERVAL = "update_interval"

DEFAULT_APPROVAL_EXPERIENCE = 10
DEFAULT_WATERING_HEALTH_GAIN = 10
DEFAULT_INITIAL_HEALTH = 50
DEFAULT_EXPERIENCE_TO_ADVANCE = 100
DEFAULT_STICKER_IMAGE_REF = "sticker_default"

# ConfigFlow Steps
CONFIG_FLOW_STEP_USER = "user"
OPTIONS_FLOW_STEP_INIT = "init"

# Config/options flow error keys
TRANS_KEY_CFOF_INVALID_IMAGE_REF = "invalid_image_ref"

# ------------------------------------------------------------------------------------------------
# Growth Rules
# ------------------------------------------------------------------------------------------------
HEALTH_MIN = 0
HEALTH_MAX = 100
PLANT_FIRST_STAGE = 1
# Rolling window between waterings
WATERING_WINDOW_HOURS = 24
# A gap this long between waterings breaks the streak
WATERING_STREAK_GAP_HOURS = 48

DEFAULT_ZERO = 0

# ------------------------------------------------------------------------------------------------
# Roles
# ------------------------------------------------------------------------------------------------
ROLE_GUARDIAN = "guardian"
ROLE_DEPENDENT = "dependent"
ROLES = [ROLE_GUARDIAN, ROLE_DEPENDENT]

# ------------------------------------------------------------------------------------------------
# Assignment Status
# ------------------------------------------------------------------------------------------------
ASSIGNMENT_STATUS_PENDING = "PENDING"
ASSIGNMENT_STATUS_SUBMITTED = "SUBMITTED"
ASSIGNMENT_STATUS_APPROVED = "APPROVED"
ASSIGNMENT_STATUS_REJECTED = "REJECTED"
ASSIGNMENT_STATUS_EXPIRED = "EXPIRED"

ASSIGNMENT_STATUSES = [
    ASSIGNMENT_STATUS_PENDING,
    ASSIGNMENT_STATUS_SUBMITTED,
    ASSIGNMENT_STATUS_APPROVED,
    ASSIGNMENT_STATUS_REJECTED,
    ASSIGNMENT_STATUS_EXPIRED,
]

# ------------------------------------------------------------------------------------------------
# Recurrence
# ------------------------------------------------------------------------------------------------
RECURRENCE_ONCE = "ONCE"
RECURRENCE_DAILY = "DAILY"
RECURRENCE_WEEKLY = "WEEKLY"
RECURRENCE_MONTHLY = "MONTHLY"

RECURRENCE_OPTIONS = [
    RECURRENCE_ONCE,
    RECURRENCE_DAILY,
    RECURRENCE_WEEKLY,
    RECURRENCE_MONTHLY,
]

# ------------------------------------------------------------------------------------------------
# Data Keys
# ------------------------------------------------------------------------------------------------
# Top-level buckets of the authoritative store
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
DATA_PROFILES = "profiles"
DATA_COMMITMENTS = "commitments"
DATA_ASSIGNMENTS = "assignments"
DATA_STICKERS = "stickers"
DATA_REWARDS = "rewards"
DATA_REDEMPTIONS = "redemptions"
DATA_PLANT_TYPES = "plant_types"
DATA_PLANTS = "plants"
DATA_WATERING_LOGS = "watering_logs"

SCHEMA_VERSION = 1

# Client store buckets
DATA_CACHE = "cache"
DATA_PENDING_ACTIONS = "pending_actions"
DATA_PENDING_SEQUENCE = "pending_sequence"

# Shared
DATA_ID = "id"
DATA_CREATED_AT = "created_at"

# Profile
DATA_PROFILE_NAME = "name"
DATA_PROFILE_ROLE = "role"
DATA_PROFILE_HA_USER_ID = "ha_user_id"
DATA_PROFILE_GUARDIAN_IDS = "guardian_ids"

# Commitment definition
DATA_COMMITMENT_TITLE = "title"
DATA_COMMITMENT_DESCRIPTION = "description"
DATA_COMMITMENT_RECURRENCE = "recurrence"
DATA_COMMITMENT_START_DATE = "start_date"
DATA_COMMITMENT_END_DATE = "end_date"
DATA_COMMITMENT_IS_ACTIVE = "is_active"
DATA_COMMITMENT_GUARDIAN_ID = "guardian_id"
DATA_COMMITMENT_DEPENDENT_IDS = "dependent_ids"

# Assignment
DATA_ASSIGNMENT_COMMITMENT_ID = "commitment_id"
DATA_ASSIGNMENT_DEPENDENT_ID = "dependent_id"
DATA_ASSIGNMENT_DUE_DATE = "due_date"
DATA_ASSIGNMENT_STATUS = "status"
DATA_ASSIGNMENT_VERIFICATION_IMAGE_REF = "verification_image_ref"
DATA_ASSIGNMENT_VERIFICATION_NOTE = "verification_note"
DATA_ASSIGNMENT_VERIFICATION_TIME = "verification_time"
DATA_ASSIGNMENT_REJECTION_REASON = "rejection_reason"
DATA_ASSIGNMENT_COMPLETED_AT = "completed_at"

# Sticker
DATA_STICKER_DEPENDENT_ID = "dependent_id"
DATA_STICKER_SOURCE_ASSIGNMENT_ID = "source_assignment_id"
DATA_STICKER_TITLE = "title"
DATA_STICKER_IMAGE_REF = "image_ref"
DATA_STICKER_MINTED_AT = "minted_at"
DATA_STICKER_REDEEMED_BY_REWARD_ID = "redeemed_by_reward_id"

# Reward
DATA_REWARD_GUARDIAN_ID = "guardian_id"
DATA_REWARD_TITLE = "title"
DATA_REWARD_DESCRIPTION = "description"
DATA_REWARD_REQUIRED_STICKER_COUNT = "required_sticker_count"
DATA_REWARD_IS_ACTIVE = "is_active"

# Reward redemption
DATA_REDEMPTION_REWARD_ID = "reward_id"
DATA_REDEMPTION_REWARD_TITLE = "reward_title"
DATA_REDEMPTION_GUARDIAN_ID = "guardian_id"
DATA_REDEMPTION_DEPENDENT_ID = "dependent_id"
DATA_REDEMPTION_STICKER_IDS = "sticker_ids_consumed"
DATA_REDEMPTION_REDEEMED_AT = "redeemed_at"

# Plant type
DATA_PLANT_TYPE_NAME = "name"
DATA_PLANT_TYPE_DESCRIPTION = "description"
DATA_PLANT_TYPE_MAX_STAGE = "max_stage"
DATA_PLANT_TYPE_IMAGE_PREFIX = "image_prefix"
DATA_PLANT_TYPE_EXPERIENCE_TO_ADVANCE = "experience_to_advance"

# Plant
DATA_PLANT_DEPENDENT_ID = "dependent_id"
DATA_PLANT_TYPE_ID = "plant_type_id"
DATA_PLANT_NAME = "name"
DATA_PLANT_STAGE = "stage"
DATA_PLANT_HEALTH = "health"
DATA_PLANT_EXPERIENCE = "experience"
DATA_PLANT_EXPERIENCE_TO_ADVANCE = "experience_to_advance"
DATA_PLANT_CAN_ADVANCE = "can_advance"
DATA_PLANT_LAST_WATERED_AT = "last_watered_at"
DATA_PLANT_COMPLETED = "completed"
DATA_PLANT_COMPLETED_AT = "completed_at"
DATA_PLANT_STARTED_AT = "started_at"
DATA_PLANT_EXPERIENCE_SOURCES = "experience_sources"

# Watering log
DATA_WATERING_PLANT_ID = "plant_id"
DATA_WATERING_TIMESTAMP = "timestamp"
DATA_WATERING_HEALTH_GAIN = "health_gain"

# Pending action
DATA_PENDING_ACTION_TYPE = "action_type"
DATA_PENDING_PAYLOAD = "payload"
DATA_PENDING_SEQUENCE_NUMBER = "sequence"
DATA_PENDING_DEAD_LETTER = "dead_letter"

# ------------------------------------------------------------------------------------------------
# Pending Action Types
# ------------------------------------------------------------------------------------------------
ACTION_SUBMIT_VERIFICATION = "submit_verification"
ACTION_MINT_STICKER = "mint_sticker"
ACTION_GRANT_EXPERIENCE = "grant_experience"

# ------------------------------------------------------------------------------------------------
# Cache Keys
# ------------------------------------------------------------------------------------------------
CACHE_KEY_ASSIGNMENT = "assignment"
CACHE_KEY_ACTIVE_PLANT = "active_plant"
CACHE_KEY_STICKER_COUNTS = "sticker_counts"
CACHE_KEY_REWARDS = "rewards"

# ------------------------------------------------------------------------------------------------
# Domain Events (dispatcher signal suffixes)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_ASSIGNMENT_SUBMITTED = "assignment_submitted"
SIGNAL_SUFFIX_ASSIGNMENT_APPROVED = "assignment_approved"
SIGNAL_SUFFIX_ASSIGNMENT_REJECTED = "assignment_rejected"
SIGNAL_SUFFIX_REWARD_REDEEMED = "reward_redeemed"
SIGNAL_SUFFIX_PLANT_ADVANCED = "plant_advanced"

DOMAIN_EVENT_SIGNALS = [
    SIGNAL_SUFFIX_ASSIGNMENT_SUBMITTED,
    SIGNAL_SUFFIX_ASSIGNMENT_APPROVED,
    SIGNAL_SUFFIX_ASSIGNMENT_REJECTED,
    SIGNAL_SUFFIX_REWARD_REDEEMED,
    SIGNAL_SUFFIX_PLANT_ADVANCED,
]

# Home Assistant bus event carrying forwarded domain events
EVENT_GROWPROMISE = "growpromise_event"
EVENT_DATA_TYPE = "type"
EVENT_DATA_ENTRY_ID = "entry_id"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_REGISTER_PROFILE = "register_profile"
SERVICE_CREATE_COMMITMENT = "create_commitment"
SERVICE_UPDATE_COMMITMENT = "update_commitment"
SERVICE_SET_COMMITMENT_ACTIVE = "set_commitment_active"
SERVICE_DELETE_COMMITMENT = "delete_commitment"
SERVICE_SUBMIT_VERIFICATION = "submit_verification"
SERVICE_RESOLVE_VERIFICATION = "resolve_verification"
SERVICE_CREATE_REWARD = "create_reward"
SERVICE_DELETE_REWARD = "delete_reward"
SERVICE_REDEEM_REWARD = "redeem_reward"
SERVICE_ADD_PLANT_TYPE = "add_plant_type"
SERVICE_START_PLANT = "start_plant"
SERVICE_WATER_PLANT = "water_plant"
SERVICE_ADVANCE_PLANT = "advance_plant"
SERVICE_SYNC_PENDING_ACTIONS = "sync_pending_actions"
SERVICE_UPDATE_REWARD = "update_reward"
SERVICE_SET_REWARD_ACTIVE = "set_reward_active"

# Query services (response only)
SERVICE_GET_ASSIGNMENT = "get_assignment"
SERVICE_LIST_ASSIGNMENTS = "list_assignments"
SERVICE_LIST_PENDING_VERIFICATIONS = "list_pending_verifications"
SERVICE_LIST_COMMITMENTS = "list_commitments"
SERVICE_LIST_REWARDS = "list_rewards"
SERVICE_GET_REWARD_PROGRESS = "get_reward_progress"
SERVICE_LIST_REDEMPTIONS = "list_redemptions"
SERVICE_GET_STICKER_COUNTS = "get_sticker_counts"
SERVICE_LIST_STICKERS = "list_stickers"
SERVICE_LIST_PLANT_TYPES = "list_plant_types"
SERVICE_LIST_PLANTS = "list_plants"
SERVICE_GET_ACTIVE_PLANT = "get_active_plant"
SERVICE_GET_DEPENDENT_STATS = "get_dependent_stats"

QUERY_SERVICES = [
    SERVICE_GET_ASSIGNMENT,
    SERVICE_LIST_ASSIGNMENTS,
    SERVICE_LIST_PENDING_VERIFICATIONS,
    SERVICE_LIST_COMMITMENTS,
    SERVICE_LIST_REWARDS,
    SERVICE_GET_REWARD_PROGRESS,
    SERVICE_LIST_REDEMPTIONS,
    SERVICE_GET_STICKER_COUNTS,
    SERVICE_LIST_STICKERS,
    SERVICE_LIST_PLANT_TYPES,
    SERVICE_LIST_PLANTS,
    SERVICE_GET_ACTIVE_PLANT,
    SERVICE_GET_DEPENDENT_STATS,
]

SERVICES = [
    SERVICE_REGISTER_PROFILE,
    SERVICE_CREATE_COMMITMENT,
    SERVICE_UPDATE_COMMITMENT,
    SERVICE_SET_COMMITMENT_ACTIVE,
    SERVICE_DELETE_COMMITMENT,
    SERVICE_SUBMIT_VERIFICATION,
    SERVICE_RESOLVE_VERIFICATION,
    SERVICE_CREATE_REWARD,
    SERVICE_DELETE_REWARD,
    SERVICE_REDEEM_REWARD,
    SERVICE_ADD_PLANT_TYPE,
    SERVICE_START_PLANT,
    SERVICE_WATER_PLANT,
    SERVICE_ADVANCE_PLANT,
    SERVICE_SYNC_PENDING_ACTIONS,
    SERVICE_UPDATE_REWARD,
    SERVICE_SET_REWARD_ACTIVE,
    *QUERY_SERVICES,
]

# Service fields
FIELD_NAME = "name"
FIELD_ROLE = "role"
FIELD_USER_ID = "user_id"
FIELD_GUARDIAN_IDS = "guardian_ids"
FIELD_COMMITMENT_ID = "commitment_id"
FIELD_TITLE = "title"
FIELD_DESCRIPTION = "description"
FIELD_RECURRENCE = "recurrence"
FIELD_START_DATE = "start_date"
FIELD_END_DATE = "end_date"
FIELD_DEPENDENT_ID = "dependent_id"
FIELD_DEPENDENT_IDS = "dependent_ids"
FIELD_IS_ACTIVE = "is_active"
FIELD_ASSIGNMENT_ID = "assignment_id"
FIELD_IMAGE_REF = "image_ref"
FIELD_NOTE = "note"
FIELD_APPROVED = "approved"
FIELD_REJECTION_REASON = "rejection_reason"
FIELD_REWARD_ID = "reward_id"
FIELD_REQUIRED_STICKER_COUNT = "required_sticker_count"
FIELD_PLANT_TYPE_ID = "plant_type_id"
FIELD_MAX_STAGE = "max_stage"
FIELD_IMAGE_PREFIX = "image_prefix"
FIELD_EXPERIENCE_TO_ADVANCE = "experience_to_advance"
FIELD_PLANT_ID = "plant_id"
FIELD_STATUS = "status"
FIELD_ACTIVE_ONLY = "active_only"

# ------------------------------------------------------------------------------------------------
# Translation Keys (errors)
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"
TRANS_KEY_ERROR_VALIDATION = "validation_error"
TRANS_KEY_ERROR_NOT_LOADED = "not_loaded"
TRANS_KEY_ERROR_INVALID_TRANSITION = "invalid_transition"
TRANS_KEY_ERROR_INSUFFICIENT_BALANCE = "insufficient_balance"
TRANS_KEY_ERROR_NOT_ENOUGH_EXPERIENCE = "not_enough_experience"
TRANS_KEY_ERROR_ALREADY_WATERED = "already_watered"
TRANS_KEY_ERROR_PLANT_COMPLETED = "plant_completed"
TRANS_KEY_ERROR_TRANSPORT = "transport_error"
TRANS_KEY_ERROR_GENERIC = "generic_error"
