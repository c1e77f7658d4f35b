#!/usr/bin/env python3
# -*- coding: utf-8 -*-
class MeowError(Exception):
    ''' Base class for all exceptions raised by the meow client '''

class ConfigError(MeowError):
    ''' Exception raised when the configuration file is malformed '''

class CommandError(MeowError):
    ''' Exception raised when a command can not be handled by the session '''

class BusClosed(MeowError):
    ''' Exception raised when sending a command on a closed bus '''

class BusFull(MeowError):
    ''' Exception raised when a non-blocking send finds the bus saturated '''

class IRCError(Exception):
    ''' Base class for all exceptions in the IRC protocol layer '''

class ConnectionFailed(IRCError):
    ''' Exception raised when the connection to the server fails '''

class ConnectionClosed(IRCError):
    ''' Exception raised when the connection to the server is closed '''

class ProtocolError(IRCError):
    ''' Exception raised when a line can not be encoded or decoded '''
