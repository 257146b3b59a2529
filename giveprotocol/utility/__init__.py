# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from .loggingFormatters import MultiLineFormatter, GunicornWorkerFilter, NoDockerHealthcheckFilter, configure_logging
