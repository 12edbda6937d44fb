# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package turns gateway identity headers into actor contexts and
renders every error as an RFC 7807 problem document.
"""
