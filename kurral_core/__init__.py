# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Kurral Core Engine
==================

Content trust and value pipeline for short posts: claim checking,
trust policy, value scoring, engagement prediction and feed ranking.
"""

__version__ = "0.4.0"

# Versioning for stored annotations (reproducibility across prompt changes).
# When changing prompts or scoring weights, bump these strings.
PROMPT_VERSION = "kurral_pipeline_v2"
SCORING_VERSION = "value_weights_v1"
