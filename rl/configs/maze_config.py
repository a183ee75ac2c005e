"""
Training configuration for the maze-chase environment
"""

# Engine parameters (splatted into MazeChaseGame through the env)
GAME_CONFIG = {
    "tick_ms": 16.0,
    "cash_points": 100,
    "power_up_points": 500,
    "enemy_points": 500,
    "hit_penalty": 200,
    "power_up_duration_ms": 10_000.0,
    "base_enemies": 4,
    "max_extra_enemies": 4,
    "ally_noise": 0.05,
}

# Environment parameters
ENV_CONFIG = {
    # "render_mode": None,  # Don't render during training
    "frame_skip": 10,  # one cell crossing per step
    "max_steps": 1500,
    "k_enemies": 4,
    "m_cash": 4,
    "start_level": 0,
    "enemy_mode": "greedy",
    "collision_mode": "lenient",
    "game_kwargs": GAME_CONFIG,
}

# ==============================================================================
# REWARD SHAPING
# ==============================================================================

REWARD_CONFIG = {
    "R_CASH": 1.0,       # Cash pickup
    "R_POWER_UP": 3.0,   # Power-up pickup
    "R_DEFEAT": 3.0,     # Enemy defeated while powered
    "R_HIT": 5.0,        # Penalty for getting caught
    "R_EXIT": 20.0,      # Level complete
    "R_TIME": 0.01,      # Small time penalty
    "R_GAME_OVER": 10.0, # Strict mode only
}

# ==============================================================================
# ALGORITHM HYPERPARAMETERS
# ==============================================================================

# PPO hyperparameters
PPO_CONFIG = {
    "policy": "MlpPolicy",
    "learning_rate": 3e-4,
    "n_steps": 1024,
    "batch_size": 256,
    "n_epochs": 10,
    "gamma": 0.99,
    "gae_lambda": 0.95,
    "clip_range": 0.2,
    "ent_coef": 0.01,
    "vf_coef": 0.5,
    "max_grad_norm": 0.5,
    "verbose": 1,
}

# DQN hyperparameters
DQN_CONFIG = {
    "policy": "MlpPolicy",
    "learning_rate": 1e-4,
    "buffer_size": 100_000,
    "learning_starts": 1000,
    "batch_size": 128,
    "tau": 1.0,
    "gamma": 0.99,
    "train_freq": 4,
    "gradient_steps": 1,
    "target_update_interval": 1000,
    "exploration_fraction": 0.1,
    "exploration_initial_eps": 1.0,
    "exploration_final_eps": 0.05,
    "verbose": 1,
}

# ==============================================================================
# TRAINING SETTINGS
# ==============================================================================

TRAINING_CONFIG = {
    "total_timesteps": 500_000,
    "save_freq": 10_000,
    "eval_freq": 5_000,
    "log_dir": "./logs",
    "model_dir": "./models",
    "tensorboard_log": "./tensorboard_logs",
}
