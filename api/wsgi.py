# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
WSGI entry point.

Serve with any WSGI server, e.g. ``gunicorn wsgi:app``.
"""

import os
from app import create_production_app

app = create_production_app()

if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
