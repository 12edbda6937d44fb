# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""HTTP routes for the case lifecycle API."""
