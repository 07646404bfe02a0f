# SPDX-License-Identifier: Apache-2.0
from server_log.main import main

main()
