# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""Maintenance scripts for the case store."""
