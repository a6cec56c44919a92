# This file is part of hostnetd. See LICENSE file for license information.
